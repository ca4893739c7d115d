"""Email thread synchronization and retry orchestration for lead views."""
