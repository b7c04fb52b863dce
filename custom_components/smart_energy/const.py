"""Constants for the Smart Energy integration."""

DOMAIN = "smart_energy"

# Config keys
CONF_PRICE_ENTITY = "price_entity"
CONF_PRICE_THRESHOLD = "price_threshold"
CONF_TEMPERATURE_SENSOR = "temperature_sensor"
CONF_TEMPERATURE_MIN = "temperature_min"
CONF_TEMPERATURE_MAX = "temperature_max"
CONF_ENERGY_USAGE_ENTITY = "energy_usage_entity"
CONF_ENERGY_USAGE_LIMIT = "energy_usage_limit"
CONF_NIGHT_START = "night_start"
CONF_NIGHT_END = "night_end"

# Device subentry config keys
CONF_PRIORITY = "priority"
CONF_CATEGORY = "category"
CONF_NIGHT_CURTAILED = "night_curtailed"
CONF_SCHEDULE_TIME = "schedule_time"

# Defaults
DEFAULT_PRICE_THRESHOLD = 0.20
DEFAULT_TEMPERATURE_MIN = 20.0
DEFAULT_TEMPERATURE_MAX = 24.0
DEFAULT_ENERGY_USAGE_LIMIT = 30.0
DEFAULT_NIGHT_START_HOUR = 22
DEFAULT_NIGHT_END_HOUR = 6
DEFAULT_PRIORITY = 5

# Priority 1 devices are never shed
ESSENTIAL_PRIORITY = 1

# Subentry types
SUBENTRY_DEVICE = "device"
