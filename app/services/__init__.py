"""Business logic: auth, roles, workspace store and service."""
