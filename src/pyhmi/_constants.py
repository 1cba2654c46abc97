"""Internal constants shared across the library."""

# ------------------------------------------------------------------
# Module launcher command construction
# ------------------------------------------------------------------

LAUNCHER = "mainboard"
LAUNCH_PREFIX = f"nohup {LAUNCHER}"
PROCESS_GROUP_FLAG = "-p"
DESCRIPTOR_FILE_FLAG = "-d"
BACKGROUND_MARKER = "&"
KILL_BY_PATTERN = "pkill -f"

# ------------------------------------------------------------------
# Status
# ------------------------------------------------------------------

HEADER_MODULE_NAME = "HMI"
DOCKER_IMAGE_ENV = "DOCKER_IMG"
NAVIGATION_MODE_NAME = "Navigation"
COMPONENT_NOT_REPORTED = "Status not reported by Monitor."

# Names of the runtime override flags consumed by out-of-process components.
MAP_DIR_FLAG = "map_dir"
VEHICLE_DIR_FLAG = "vehicle_dir"

# ------------------------------------------------------------------
# Driving-mode transition
# ------------------------------------------------------------------

TRANSITION_MAX_TRIES = 3
TRANSITION_TRY_INTERVAL_S = 0.5
