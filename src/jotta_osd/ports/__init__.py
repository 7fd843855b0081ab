"""Ports - inbound API contracts and outbound dependency contracts."""
