"""Container cluster scheduling, host discovery, leader election, key/value and state storage."""

__version__ = "0.3.0"