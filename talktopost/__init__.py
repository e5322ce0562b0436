"""TalkToPost backend: voice recordings to tweets and threads."""

__version__ = "1.0.0"
