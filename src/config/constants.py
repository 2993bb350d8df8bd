"""Constants for the configuration module."""

# Log component names
COMPONENT_CONFIG = "config"
COMPONENT_CLI = "cli"

# File type identifiers
FILE_TYPE_APP = "app"
FILE_TYPE_TRACKS = "tracks"

# Default file names, resolved relative to the working directory
DEFAULT_CONFIG_FILENAME = "config.yml"
DEFAULT_TRACKS_FILENAME = "tracks.yml"
