"""Infrastructure layer: storage backends and notification channels."""
