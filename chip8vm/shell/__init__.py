"""Host-side services: ROM loading, machine creation and frame rendering."""
