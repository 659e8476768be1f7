"""Core domain layer: entities, interfaces, events and services."""
