"""Management CLI (``notify-service``)."""
