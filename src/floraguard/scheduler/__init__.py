"""Local polling scheduler for care reminders."""
