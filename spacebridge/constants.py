"""Shared constants for the Spacelift account migration tool."""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Spaces
# ---------------------------------------------------------------------------

ROOT_SPACE_ID = "root"

# ---------------------------------------------------------------------------
# Stack vendors
# ---------------------------------------------------------------------------

VENDOR_TERRAFORM = "StackConfigVendorTerraform"
VENDOR_TERRAGRUNT = "StackConfigVendorTerragrunt"

# Vendors whose state can be transferred as a managed state file
TERRAFORM_VENDOR_TYPES = frozenset({VENDOR_TERRAFORM, VENDOR_TERRAGRUNT})

FRIENDLY_VENDOR_NAMES: dict[str, str] = {
    VENDOR_TERRAFORM: "Terraform",
    VENDOR_TERRAGRUNT: "Terragrunt",
    "StackConfigVendorAnsible": "Ansible",
    "StackConfigVendorKubernetes": "Kubernetes",
    "StackConfigVendorCloudFormation": "CloudFormation",
    "StackConfigVendorPulumi": "Pulumi",
}

# ---------------------------------------------------------------------------
# Context config element types
# ---------------------------------------------------------------------------

CONFIG_TYPE_ENVIRONMENT_VARIABLE = "ENVIRONMENT_VARIABLE"
CONFIG_TYPE_FILE_MOUNT = "FILE_MOUNT"

# ---------------------------------------------------------------------------
# Hook phases, in the order they appear on the wire
# ---------------------------------------------------------------------------

HOOK_PHASES = (
    "afterApply",
    "beforeApply",
    "afterInit",
    "beforeInit",
    "afterPlan",
    "beforePlan",
    "afterPerform",
    "beforePerform",
    "afterDestroy",
    "beforeDestroy",
    "afterRun",
)

# ---------------------------------------------------------------------------
# HTTP / API
# ---------------------------------------------------------------------------

GRAPHQL_PATH = "/graphql"
GRAPHQL_TIMEOUT_SECONDS = 30

# Tokens are valid for about an hour; refresh a little early
TOKEN_TTL_SECONDS = 55 * 60

HTTP_OK_MIN = 200
HTTP_OK_MAX = 299
HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403
HTTP_SERVER_ERROR_MIN = 500

# State blobs are streamed; only the connection attempt is bounded
STREAM_CONNECT_TIMEOUT_SECONDS = 30
STREAM_CHUNK_SIZE = 64 * 1024

# Maximum length of API payloads written to debug logs
API_LOG_TRUNCATE_LENGTH = 2000

# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------

SOURCE_ENV_PREFIX = "SOURCE_SPACELIFT_"
DESTINATION_ENV_PREFIX = "DESTINATION_SPACELIFT_"

# ---------------------------------------------------------------------------
# Defaults for CLI commands
# ---------------------------------------------------------------------------

DEFAULT_MANIFEST_FILE = "manifest.json"
DEFAULT_GENERATE_DIR = "./generated"
DEFAULT_REPORT_DIR = "spacebridge_output"
STATE_REPORT_FILE = "state_migration_report.yaml"
