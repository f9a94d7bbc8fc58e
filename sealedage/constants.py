"""Constants for the SealedAge operator."""

# API Group
API_GROUP = "security.age.io"
API_VERSION = "v1alpha1"
API_GROUP_VERSION = f"{API_GROUP}/{API_VERSION}"

# Resource
KIND_SEALED_AGE = "SealedAge"
PLURAL_SEALED_AGE = "sealedages"

# Secrets
SECRET_TYPE_OPAQUE = "Opaque"
PRIVATE_KEY_FIELD = "private"

# Labels
LABEL_MANAGED_BY = "app.kubernetes.io/managed-by"
MANAGED_BY = "sealed-age-operator"

# age framing
ARMOR_HEADER = "-----BEGIN AGE ENCRYPTED FILE-----"
ARMOR_FOOTER = "-----END AGE ENCRYPTED FILE-----"
ARMOR_COLUMNS = 64
AGE_MAGIC = "age-encryption.org/"

# Condition Types
COND_READY = "Ready"

# Reasons
REASON_DECRYPTED = "Decrypted"

# Seconds to wait before retrying when the key pool is empty
DEFAULT_REQUEUE_SECONDS = 30.0
