"""Cache-first university, course, semester and subject catalog service."""
