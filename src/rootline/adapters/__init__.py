"""Store adapters implementing the core protocols."""
