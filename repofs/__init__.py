"""Location-transparent access to model repositories.

repofs reads directory trees from local disk, Google Cloud Storage, AWS S3
and Azure Blob Storage through one interface, and can copy a remote tree to
local disk so downstream code only deals with ordinary files.

Usage:
    python -m repofs ls s3://my-bucket/models
    python -m repofs localize gs://my-bucket/models/resnet
"""

__version__ = "0.1.0"
