"""Route blueprints for the portal."""
