"""External collaborators of the catalog export."""
