"""Clip rectangular regions out of an image atlas into separate PNG files."""
