"""dailydeck - curate a catalog of task cards and work through a daily deck."""
