"""External collaborators and the conversion pipelines built on them."""
