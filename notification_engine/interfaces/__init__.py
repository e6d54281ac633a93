"""Delivery mechanisms exposed by the notification engine."""
