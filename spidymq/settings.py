"""Default configuration"""


class Config:
    """Default configuration"""

    # Connector parameters
    SPIDYMQ_BROKER_URL = ""
    SPIDYMQ_SERVER_URL = ""
    SPIDYMQ_MOUNT_PATH = "/spidymq"
    SPIDYMQ_USE_BODY_PARSER = True
    SPIDYMQ_REQUEST_TIMEOUT = None
    SPIDYMQ_MAX_WORKERS = None

    # Logging parameters (see spidymq.config.LoggingConfigSchema):
    #  level, console, dirpath, history, format, enabled. Untouched if None.
    SPIDYMQ_LOGGING = None

    # JSON configuration file (see spidymq.config.load_config), overrides
    #  connector and logging parameters above
    SPIDYMQ_CONFIG_FILE = None

    # API parameters
    API_TITLE = "SpidyMQ connector"
    API_VERSION = 0.1
    OPENAPI_VERSION = '3.0.2'
