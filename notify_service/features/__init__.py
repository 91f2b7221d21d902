"""Feature packages (templates, presenters)."""
