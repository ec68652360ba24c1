"""Configuration file schemas for vaultpool."""

POLICY_SCHEMA = {
    "type": "object",
    "properties": {
        "type": {
            "type": "string",
            "enum": ["margin", "fraction"]
        },
        "margin_ms": {
            "type": "integer",
            "minimum": 1,
            "description": "Refresh this long before the lease expires (margin policy)"
        },
        "fraction": {
            "type": "number",
            "exclusiveMinimum": 0,
            "exclusiveMaximum": 1,
            "description": "Refresh after this fraction of the lease (fraction policy)"
        }
    },
    "required": ["type"],
    "additionalProperties": False
}

ROTATION_CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "vault": {
            "type": "object",
            "properties": {
                "url": {
                    "type": "string",
                    "pattern": r"^https?://"
                },
                "token": {
                    "type": "string",
                    "description": "Vault token (VAULT_TOKEN is used when omitted)"
                },
                "namespace": {
                    "type": "string"
                },
                "verify": {
                    "type": ["boolean", "string"],
                    "description": "Verify TLS, or path to a CA bundle"
                },
                "timeout": {
                    "type": "integer",
                    "minimum": 1
                }
            },
            "additionalProperties": False
        },
        "rotation": {
            "type": "object",
            "properties": {
                "mount_path": {
                    "type": "string",
                    "minLength": 1
                },
                "role": {
                    "type": "string",
                    "minLength": 1
                },
                "retry_delay_ms": {
                    "type": "integer",
                    "minimum": 1,
                    "default": 5000
                },
                "policy": POLICY_SCHEMA
            },
            "required": ["mount_path", "role"],
            "additionalProperties": False
        },
        "pool": {
            "type": "object",
            "properties": {
                "url": {
                    "type": "string",
                    "minLength": 1,
                    "description": "SQLAlchemy database URL, without credentials"
                },
                "pool_size": {
                    "type": "integer",
                    "minimum": 1
                },
                "max_overflow": {
                    "type": "integer",
                    "minimum": 0
                },
                "pool_timeout": {
                    "type": "number",
                    "exclusiveMinimum": 0
                },
                "pool_recycle": {
                    "type": "integer"
                },
                "pool_pre_ping": {
                    "type": "boolean"
                },
                "validate_on_start": {
                    "type": "boolean"
                },
                "connect_args": {
                    "type": "object"
                },
                "username_key": {
                    "type": ["string", "null"],
                    "description": "DBAPI connect keyword receiving the username (default: user)"
                },
                "password_key": {
                    "type": ["string", "null"],
                    "description": "DBAPI connect keyword receiving the password (default: password)"
                }
            },
            "required": ["url"],
            "additionalProperties": False
        }
    },
    "required": ["rotation", "pool"],
    "additionalProperties": False
}
