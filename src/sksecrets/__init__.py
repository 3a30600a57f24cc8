"""
SKSecrets — profile-scoped secrets export and import.

Move your secrets between hosts as an encrypted, checksummed export.
Every file verified on the way out. Every file verified on the way in.

A smilinTux Open Source Project.
"""

import os

__version__ = "0.1.0"
__author__ = "smilinTux"

DEFAULT_SECRETS_ROOT = os.environ.get("SKSECRETS_ROOT", "/secrets")
SHARED_PROFILE = "shared"
