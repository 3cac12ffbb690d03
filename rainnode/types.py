"""Standard UI, parameter, device and service type identifiers."""

# Standard UI types
UI_TOGGLE = "esp.ui.toggle"
UI_SLIDER = "esp.ui.slider"
UI_DROPDOWN = "esp.ui.dropdown"
UI_TEXT = "esp.ui.text"
UI_HUE_SLIDER = "esp.ui.hue-slider"
UI_HUE_CIRCLE = "esp.ui.hue-circle"
UI_PUSHBUTTON = "esp.ui.push-btn-big"
UI_TRIGGER = "esp.ui.trigger"
UI_HIDDEN = "esp.ui.hidden"

# Standard parameter types
PARAM_NAME = "esp.param.name"
PARAM_POWER = "esp.param.power"
PARAM_BRIGHTNESS = "esp.param.brightness"
PARAM_HUE = "esp.param.hue"
PARAM_SATURATION = "esp.param.saturation"
PARAM_INTENSITY = "esp.param.intensity"
PARAM_CCT = "esp.param.cct"
PARAM_SPEED = "esp.param.speed"
PARAM_DIRECTION = "esp.param.direction"
PARAM_TEMPERATURE = "esp.param.temperature"
PARAM_OTA_STATUS = "esp.param.ota_status"
PARAM_OTA_INFO = "esp.param.ota_info"
PARAM_OTA_URL = "esp.param.ota_url"
PARAM_TIMEZONE = "esp.param.tz"
PARAM_TIMEZONE_POSIX = "esp.param.tz_posix"
PARAM_SCHEDULES = "esp.param.schedules"
PARAM_SCENES = "esp.param.scenes"
PARAM_REBOOT = "esp.param.reboot"
PARAM_FACTORY_RESET = "esp.param.factory-reset"
PARAM_WIFI_RESET = "esp.param.wifi-reset"
PARAM_LOCAL_CONTROL_POP = "esp.param.local_control_pop"
PARAM_LOCAL_CONTROL_TYPE = "esp.param.local_control_type"
PARAM_TOGGLE = "esp.param.toggle"
PARAM_RANGE = "esp.param.range"
PARAM_MODE = "esp.param.mode"
PARAM_BLINDS_POSITION = "esp.param.blinds-position"
PARAM_GARAGE_POSITION = "esp.param.garage-position"
PARAM_LIGHT_MODE = "esp.param.light-mode"
PARAM_AC_MODE = "esp.param.ac-mode"

# Standard device types
DEVICE_SWITCH = "esp.device.switch"
DEVICE_LIGHTBULB = "esp.device.lightbulb"
DEVICE_FAN = "esp.device.fan"
DEVICE_TEMP_SENSOR = "esp.device.temperature-sensor"
DEVICE_LIGHT = "esp.device.light"
DEVICE_OUTLET = "esp.device.outlet"
DEVICE_PLUG = "esp.device.plug"
DEVICE_SOCKET = "esp.device.socket"
DEVICE_LOCK = "esp.device.lock"
DEVICE_BLINDS_INTERNAL = "esp.device.blinds-internal"
DEVICE_BLINDS_EXTERNAL = "esp.device.blinds-external"
DEVICE_GARAGE_DOOR = "esp.device.garage-door"
DEVICE_GARAGE_LOCK = "esp.device.garage-door-lock"
DEVICE_SPEAKER = "esp.device.speaker"
DEVICE_AIR_CONDITIONER = "esp.device.air-conditioner"
DEVICE_THERMOSTAT = "esp.device.thermostat"
DEVICE_TV = "esp.device.tv"
DEVICE_WASHER = "esp.device.washer"
DEVICE_OTHER = "esp.device.other"

# Standard service types
SERVICE_OTA = "esp.service.ota"
SERVICE_TIME = "esp.service.time"
SERVICE_SCHEDULE = "esp.service.schedule"
SERVICE_SCENES = "esp.service.scenes"
SERVICE_SYSTEM = "esp.service.system"
SERVICE_LOCAL_CONTROL = "esp.service.local_control"