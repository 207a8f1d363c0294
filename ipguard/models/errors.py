"""Error code constants returned by the IPGUARD REST API."""

IP_INVALID_ADDRESS = "IP_INVALID_ADDRESS"
STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
SYSTEM_NOT_FOUND = "SYSTEM_NOT_FOUND"
SYSTEM_INTERNAL_ERROR = "SYSTEM_INTERNAL_ERROR"
SYSTEM_METHOD_NOT_ALLOWED = "SYSTEM_METHOD_NOT_ALLOWED"
