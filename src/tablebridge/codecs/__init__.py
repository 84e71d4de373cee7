"""Scalar, delimited-text and grid codecs."""
