"""Well-known identifiers, hosts and protocol versions."""

SDK_VERSION = "0.4.0"

DEVELOPER_SIGN_ON_CLIENT_ID = "04b07795-8ddb-461a-bbee-02f9e1bf7b46"
"""Client ID used when a credential is created without one (the Azure CLI application)."""

DEFAULT_TENANT_ID = "common"

ADFS_TENANT = "adfs"


class AzureAuthorityHosts:
    """Authority hosts of the known Azure clouds."""

    AZURE_CHINA = "https://login.chinacloudapi.cn"
    AZURE_GERMANY = "https://login.microsoftonline.de"
    AZURE_GOVERNMENT = "https://login.microsoftonline.us"
    AZURE_PUBLIC_CLOUD = "https://login.microsoftonline.com"


DEFAULT_AUTHORITY_HOST = AzureAuthorityHosts.AZURE_PUBLIC_CLOUD

ALL_TENANTS = ["*"]
"""Value for ``additionally_allowed_tenants`` that allows any tenant."""

CACHE_CAE_SUFFIX = ".cae"
CACHE_NON_CAE_SUFFIX = ".nocae"

DEFAULT_CACHE_NAME = "msal.cache"

LATEST_AUTHENTICATION_RECORD_VERSION = "1.0"

DEFAULT_SCOPE_SUFFIX = "/.default"

AUTO_DISCOVER_REGION = "AutoDiscoverRegion"
"""Sentinel for ``regional_authority`` asking the engine to detect the region."""

# Managed identity endpoints and protocol versions
IMDS_HOST = "http://169.254.169.254"
IMDS_ENDPOINT_PATH = "/metadata/identity/oauth2/token"
IMDS_API_VERSION = "2018-02-01"
AZURE_ARC_API_VERSION = "2019-11-01"
AZURE_FABRIC_API_VERSION = "2019-07-01-preview"
APP_SERVICE_2017_API_VERSION = "2017-09-01"
APP_SERVICE_2019_API_VERSION = "2019-08-01"

# 800ms -> 1600ms -> 3200ms
IMDS_MAX_RETRIES = 3
IMDS_START_DELAY = 0.8
IMDS_DELAY_MULTIPLIER = 2

IMDS_PING_TIMEOUT = 0.3
"""Seconds to wait for the IMDS probe when the caller gives no timeout."""

DEFAULT_PROCESS_TIMEOUT = 10.0
"""Seconds a developer tool subprocess may run before it is killed."""
