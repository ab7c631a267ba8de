"""Centralized constants for the agent updater."""

# Region resolution
DEFAULT_REGION = "us-east-1"
METADATA_URL = "http://169.254.169.254/latest/meta-data"
METADATA_TOKEN_URL = "http://169.254.169.254/latest/api/token"
METADATA_TOKEN_TTL_SECONDS = 21600
METADATA_TIMEOUT_SECONDS = 120

# Remote storage
BUCKET_TEMPLATE = "aws-codedeploy-{region}"
MANIFEST_KEY = "latest/VERSION"
HTTP_CONNECT_TIMEOUT_SECONDS = 30
HTTP_READ_TIMEOUT_SECONDS = 120
DOWNLOAD_CHUNK_SIZE = 64 * 1024

# Local files
DOWNLOAD_DIR = "/tmp"
LOG_FILE_PATH = "/tmp/agent-updater.log"

# Post-install sanity check
SERVICE_CONTROL_PATH = "/etc/init.d/codedeploy-agent"
SANITY_CHECK_DELAY_SECONDS = 180

# Installer frontend provisioning on apt-only hosts
GDEBI_PROVISION_COMMAND = ("apt-get", "-y", "install", "gdebi-core")
