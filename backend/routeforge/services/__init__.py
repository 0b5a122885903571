"""Services — discovery, route assembly, registration and the small built-in route sets."""
