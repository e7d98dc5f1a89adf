"""Social network backend: users, posts, comments and JWT auth over SQLAlchemy."""
