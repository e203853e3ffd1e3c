"""League persistence backends."""
