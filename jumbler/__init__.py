"""Team Jumbler: live sessions that split their members into balanced teams."""

__version__ = "0.1.0"
