"""Store adapters: in-memory, SQLAlchemy repositories and timeout guards."""
