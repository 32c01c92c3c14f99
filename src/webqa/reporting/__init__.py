"""Third-party report integrations."""
