"""mediachat: question answering over a media catalog's captions and frames."""

__version__ = "1.0.0"
