"""
Application constants and metadata.
"""

# Application info
APP_NAME = "Palantir"
APP_VERSION = "0.4.0"

# Default values
DEFAULT_PORT = 80
DEFAULT_BIND = "0.0.0.0"
DEFAULT_PROC_PATH = "/proc"
DEFAULT_SYS_PATH = "/sys"
DEFAULT_HOST_ROOT = "/"
DEFAULT_DOCKER_SOCKET = "/var/run/docker.sock"
DEFAULT_DOCKER_TIMEOUT = 5.0
DEFAULT_WORKERS = 4

# Energy integrators tick at this interval (seconds)
SAMPLE_INTERVAL = 0.5
