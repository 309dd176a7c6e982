"""visualizeit: a visual diagram editor core (scenes, components, packages)."""
