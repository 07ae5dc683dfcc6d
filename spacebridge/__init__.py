"""
Spacelift account migration tool.

Discovers spaces, stacks, contexts, policies and cloud integrations in one
Spacelift account, generates Terraform code that recreates them in
another, and moves managed Terraform state between the two.
"""

__version__ = "0.1.0"

from spacebridge.core.filtering import filter_manifest_by_space
from spacebridge.core.hierarchy import SpaceHierarchy
from spacebridge.core.manifest import Manifest, load_manifest, save_manifest
from spacebridge.core.migrator import StateMigrator
from spacebridge.core.planner import build_plan
from spacebridge.services.discovery import ManifestBuilder
from spacebridge.services.generator import TerraformGenerator
