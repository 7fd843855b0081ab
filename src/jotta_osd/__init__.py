"""
jotta-osd - Object Storage over a Cloud Filesystem

Stores buckets of named objects as fixed-size chunks on a remote
filesystem, with concurrent ranged writes, ordered concurrent reads and
msgpack-encoded object metadata.
"""

__version__ = "0.1.0"
