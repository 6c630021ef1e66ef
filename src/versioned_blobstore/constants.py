"""Constants for versioned-blobstore."""

# Scheme token carried by every identifier handed to callers
PROTOCOL = "shrine://"

# Joins a deployment-specific identifier prefix to the scheme: "<prefix>-shrine://"
IDENTIFIER_PREFIX_SEPARATOR = "-"

# Version key format: <base>_v-<millis> | <base>_v-current | <base>_v-<millis>-deletionmarker
VERSION_DELIMITER = "_v-"
CURRENT_VERSION = "current"
DELETION_MARKER = "deletionmarker"
DELETION_MARKER_SUFFIX = "-" + DELETION_MARKER

# Capabilities reported by VersionedBlobStore.supports()
FEATURE_VERSIONS = "versions"
FEATURE_VERSION_DELETION = "version_deletion"
SUPPORTED_FEATURES = frozenset({FEATURE_VERSIONS, FEATURE_VERSION_DELETION})

# Configuration
CONFIG_FILE = "blobstore.yaml"
ENV_PREFIX = "VERSIONED_BLOBSTORE_"
AZURE_CONNECTION_STRING_ENV = "AZURE_STORAGE_CONNECTION_STRING"

# Version
PACKAGE_VERSION = "0.1.0"
