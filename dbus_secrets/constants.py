"""
Well-known names of the Freedesktop Secret Service API.
"""

SERVICE_NAME = "org.freedesktop.secrets"
SERVICE_PATH = "/org/freedesktop/secrets"

_PREFIX = "org.freedesktop.Secret."
SERVICE_INTERFACE = _PREFIX + "Service"
COLLECTION_INTERFACE = _PREFIX + "Collection"
ITEM_INTERFACE = _PREFIX + "Item"
PROMPT_INTERFACE = _PREFIX + "Prompt"

DEFAULT_COLLECTION_ALIAS = "default"

COLLECTION_LABEL_PROPERTY = COLLECTION_INTERFACE + ".Label"
ITEM_LABEL_PROPERTY = ITEM_INTERFACE + ".Label"
ITEM_ATTRIBUTES_PROPERTY = ITEM_INTERFACE + ".Attributes"

ALGORITHM_PLAIN = "plain"
ALGORITHM_DH = "dh-ietf1024-sha256-aes128-cbc-pkcs7"

SECRET_SIGNATURE = "(oayays)"

# Object path the daemon returns for "no object"
ROOT_PATH = "/"
