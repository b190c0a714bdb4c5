"""InnerSound - audio capture, analysis and scoring."""

__version__ = "0.1.0"
