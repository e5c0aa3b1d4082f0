"""rnaspot — RNAScope spot detection in annotated fluorescence images."""

__version__ = "1.0.0"
