"""chatmem command-line interface."""
