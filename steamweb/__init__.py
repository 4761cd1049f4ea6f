"""Retrying web fetcher: bounded-retry access to a pluggable request executor."""
