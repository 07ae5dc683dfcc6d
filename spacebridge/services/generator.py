"""
Terraform code generation for the destination account.

:class:`TerraformGenerator` renders a :class:`~spacebridge.core.manifest.Manifest`
as Spacelift-provider HCL.  Resources reference each other by address
(``spacelift_space.platform.id``), so the generated files can be applied in
one pass.  Anything the manifest references but does not contain (a parent
space outside a filtered scope, a context that was not exported) is
emitted as a literal id.

Secrets cannot be read back from the API.  Each write-only config element
becomes a sensitive variable declared in ``variables.tf`` with a blank
entry in ``secrets.auto.tfvars.template``.
"""

from __future__ import annotations

import dataclasses
import json
import logging
import re
from pathlib import Path
from typing import Any, Iterable

from spacebridge.constants import ROOT_SPACE_ID, VENDOR_TERRAFORM
from spacebridge.core.config import AccountConfig, MigrationConfig
from spacebridge.core.manifest import Manifest
from spacebridge.exceptions import GenerationError
from spacebridge.models import (
    AWSIntegration,
    AzureIntegration,
    ConfigElement,
    Context,
    Hooks,
    Policy,
    Space,
    Stack,
)
from spacebridge.utils.formatting import friendly_vendor_type
from spacebridge.utils.logging import log_with_context

MAIN_FILE = "main.tf"
VARIABLES_FILE = "variables.tf"
SECRETS_TEMPLATE_FILE = "secrets.auto.tfvars.template"
PROVIDER_FILE = "provider.tf"
AUTODEPLOY_FILE = "autodeploy_re_enable.tf.disabled"

PROVIDER_SOURCE = "spacelift-io/spacelift"

# stack.provider -> (block name, attribute that carries the namespace)
_VCS_BLOCKS = {
    "GITHUB_ENTERPRISE": ("github_enterprise", "namespace"),
    "GITLAB": ("gitlab", "namespace"),
    "BITBUCKET_DATACENTER": ("bitbucket_datacenter", "namespace"),
    "BITBUCKET_CLOUD": ("bitbucket_cloud", "namespace"),
    "AZURE_DEVOPS": ("azure_devops", "project"),
}


class Expression(str):
    """An HCL expression emitted verbatim instead of as a string literal."""


def hcl_string(value: str) -> str:
    """Quote ``value`` as an HCL string literal.

    Template sequences are escaped so values like ``${HOME}`` in a hook
    or policy body reach Spacelift unchanged.
    """
    quoted = json.dumps(value, ensure_ascii=False)
    return quoted.replace("${", "$${").replace("%{", "%%{")


def hcl_value(value: Any) -> str:
    if isinstance(value, Expression):
        return str(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        return hcl_string(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(hcl_value(v) for v in value) + "]"
    raise GenerationError(f"cannot render {type(value).__name__} as HCL")


def _identifier(text: str) -> str:
    ident = re.sub(r"[^a-z0-9_]+", "_", text.lower()).strip("_")
    if not ident:
        return "unnamed"
    if not (ident[0].isalpha() or ident[0] == "_"):
        ident = "r_" + ident
    return ident


class _Names:
    """Hands out unique Terraform identifiers per resource type."""

    def __init__(self) -> None:
        self._taken: dict[str, set[str]] = {}

    def claim(self, kind: str, label: str) -> str:
        taken = self._taken.setdefault(kind, set())
        base = _identifier(label)
        name, n = base, 2
        while name in taken:
            name = f"{base}_{n}"
            n += 1
        taken.add(name)
        return name


class _Block:
    """Accumulates the lines of one HCL block."""

    def __init__(self, header: str, indent: int = 0) -> None:
        self.indent = indent
        self.lines = [" " * indent + header + " {"]

    def attr(self, name: str, value: Any) -> _Block:
        self.lines.append(" " * (self.indent + 2) + f"{name} = {hcl_value(value)}")
        return self

    def optional(self, name: str, value: Any) -> _Block:
        if value not in (None, "", (), []):
            self.attr(name, value)
        return self

    def comment(self, text: str) -> _Block:
        self.lines.append(" " * (self.indent + 2) + f"# {text}")
        return self

    def nested(self, block: _Block) -> _Block:
        self.lines.extend(block.render_lines())
        return self

    def render_lines(self) -> list[str]:
        return self.lines + [" " * self.indent + "}"]

    def render(self) -> str:
        return "\n".join(self.render_lines())


def _resource(kind: str, name: str) -> _Block:
    return _Block(f'resource "{kind}" "{name}"')


def _hook_attributes(block: _Block, hooks: Hooks) -> None:
    for f in dataclasses.fields(hooks):
        commands = getattr(hooks, f.name)
        if commands:
            block.attr(f.name, list(commands))


class TerraformGenerator:
    """Writes Spacelift-provider HCL for a manifest.

    Args:
        manifest: Resources to generate.
        output_dir: Directory to write into; created if missing.
        disabled: Create stacks disabled with autodeploy off, so that no
            run starts before state has been migrated.
        destination: Destination account, used for the provider endpoint.
        migration_config: Optional VCS override applied to every stack.
    """

    def __init__(
        self,
        manifest: Manifest,
        output_dir: str | Path,
        disabled: bool = False,
        destination: AccountConfig | None = None,
        migration_config: MigrationConfig | None = None,
    ) -> None:
        self.manifest = manifest
        self.output_dir = Path(output_dir)
        self.disabled = disabled
        self.destination = destination
        self.migration_config = migration_config or MigrationConfig()

        self._names = _Names()
        self._spaces: dict[str, str] = {}
        self._contexts: dict[str, str] = {}
        self._policies: dict[str, str] = {}
        self._stacks: dict[str, str] = {}
        self._aws: dict[str, str] = {}
        self._azure: dict[str, str] = {}
        self._secrets: list[tuple[str, Context, ConfigElement]] = []

    # -- References -----------------------------------------------------------

    def _space_ref(self, space_id: str | None) -> Any:
        if not space_id or space_id == ROOT_SPACE_ID:
            return ROOT_SPACE_ID
        name = self._spaces.get(space_id)
        return Expression(f"spacelift_space.{name}.id") if name else space_id

    @staticmethod
    def _ref(kind: str, index: dict[str, str], resource_id: str) -> Any:
        name = index.get(resource_id)
        return Expression(f"{kind}.{name}.id") if name else resource_id

    def _assign_names(self) -> None:
        self._names = _Names()
        self._secrets = []
        for index in (
            self._spaces,
            self._contexts,
            self._policies,
            self._stacks,
            self._aws,
            self._azure,
        ):
            index.clear()

        for space in self.manifest.spaces:
            if not space.is_root:
                self._spaces[space.id] = self._names.claim("spacelift_space", space.name)
        for context in self.manifest.contexts:
            self._contexts[context.id] = self._names.claim("spacelift_context", context.name)
        for policy in self.manifest.policies:
            self._policies[policy.id] = self._names.claim("spacelift_policy", policy.name)
        for stack in self.manifest.stacks:
            self._stacks[stack.id] = self._names.claim("spacelift_stack", stack.name)
        for aws in self.manifest.aws_integrations:
            self._aws[aws.id] = self._names.claim("spacelift_aws_integration", aws.name)
        for azure in self.manifest.azure_integrations:
            self._azure[azure.id] = self._names.claim(
                "spacelift_azure_integration", azure.name
            )

    # -- Resources ------------------------------------------------------------

    def _space_block(self, space: Space) -> _Block:
        block = _resource("spacelift_space", self._spaces[space.id])
        block.attr("name", space.name)
        block.attr("parent_space_id", self._space_ref(space.parent_space))
        block.optional("description", space.description)
        block.attr("inherit_entities", space.inherit_entities)
        block.optional("labels", list(space.labels))
        return block

    def _context_blocks(self, context: Context) -> list[_Block]:
        name = self._contexts[context.id]
        block = _resource("spacelift_context", name)
        block.attr("name", context.name)
        block.optional("description", context.description)
        block.attr("space_id", self._space_ref(context.space))
        block.optional("labels", list(context.labels))
        _hook_attributes(block, context.hooks)
        blocks = [block]

        context_ref = Expression(f"spacelift_context.{name}.id")
        for element in context.config:
            value: Any = element.value or ""
            if element.is_secret:
                variable = self._names.claim("variable", f"{context.name}_{element.id}")
                self._secrets.append((variable, context, element))
                value = Expression(f"var.{variable}")

            if element.is_file_mount:
                kind = "spacelift_mounted_file"
                child = _resource(kind, self._names.claim(kind, f"{context.name}_{element.id}"))
                child.attr("context_id", context_ref)
                child.attr("relative_path", element.id)
                child.attr("content", value)
            else:
                kind = "spacelift_environment_variable"
                child = _resource(kind, self._names.claim(kind, f"{context.name}_{element.id}"))
                child.attr("context_id", context_ref)
                child.attr("name", element.id)
                child.attr("value", value)
            child.attr("write_only", element.write_only)
            child.optional("description", element.description)
            blocks.append(child)
        return blocks

    def _policy_block(self, policy: Policy) -> _Block:
        block = _resource("spacelift_policy", self._policies[policy.id])
        block.attr("name", policy.name)
        block.optional("description", policy.description)
        block.attr("type", policy.type)
        block.attr("space_id", self._space_ref(policy.space))
        block.optional("labels", list(policy.labels))
        block.attr("body", policy.body)
        return block

    def _vcs_block(self, stack: Stack) -> _Block | None:
        override = self.migration_config.vcs
        if override is not None:
            block = _Block(override.provider, indent=2)
            block.attr("id", override.id)
            block.attr(override.scope_key, override.scope)
            return block
        if stack.provider in _VCS_BLOCKS:
            name, scope_key = _VCS_BLOCKS[stack.provider]
            return _Block(name, indent=2).attr(scope_key, stack.namespace)
        if stack.provider == "RAW_GIT" and stack.repository_url:
            block = _Block("raw_git", indent=2)
            block.attr("namespace", stack.namespace)
            block.attr("url", stack.repository_url)
            return block
        return None

    def _stack_block(self, stack: Stack) -> _Block:
        block = _resource("spacelift_stack", self._stacks[stack.id])
        block.attr("name", stack.name)
        block.optional("description", stack.description)
        block.attr("space_id", self._space_ref(stack.space))
        block.attr("repository", stack.repository)
        block.attr("branch", stack.branch)
        block.optional("project_root", stack.project_root)
        block.optional("additional_project_globs", list(stack.additional_project_globs))
        block.optional("runner_image", stack.runner_image)
        block.attr("administrative", stack.administrative)
        block.attr("autodeploy", False if self.disabled else stack.autodeploy)
        block.attr("autoretry", stack.autoretry)
        block.attr("enable_local_preview", stack.local_preview_enabled)
        block.attr("protect_from_deletion", stack.protect_from_deletion)
        block.attr("manage_state", stack.manages_state_file)
        block.attr("is_disabled", True if self.disabled else stack.is_disabled)
        block.optional("labels", list(stack.labels))
        _hook_attributes(block, stack.hooks)

        if stack.vendor_type == VENDOR_TERRAFORM:
            block.optional("terraform_version", stack.terraform_version)
            block.attr(
                "terraform_external_state_access", stack.external_state_access_enabled
            )
        elif stack.vendor_type:
            block.comment(
                f"{friendly_vendor_type(stack.vendor_type)} vendor settings "
                "must be configured by hand"
            )

        vcs = self._vcs_block(stack)
        if vcs is not None:
            block.nested(vcs)

        if self.disabled:
            # Re-enabled out of band by `spacebridge stacks enable`
            lifecycle = _Block("lifecycle", indent=2)
            lifecycle.attr("ignore_changes", [Expression("is_disabled")])
            block.nested(lifecycle)
        return block

    def _stack_attachment_blocks(self, stack: Stack) -> list[_Block]:
        stack_name = self._stacks[stack.id]
        stack_ref = Expression(f"spacelift_stack.{stack_name}.id")
        blocks = []

        for attachment in stack.attached_contexts:
            kind = "spacelift_context_attachment"
            block = _resource(kind, self._names.claim(kind, f"{stack_name}_{attachment.id}"))
            block.attr(
                "context_id",
                self._ref("spacelift_context", self._contexts, attachment.context_id),
            )
            block.attr("stack_id", stack_ref)
            block.attr("priority", attachment.priority)
            blocks.append(block)

        for attachment in stack.attached_policies:
            kind = "spacelift_policy_attachment"
            block = _resource(kind, self._names.claim(kind, f"{stack_name}_{attachment.id}"))
            block.attr(
                "policy_id",
                self._ref("spacelift_policy", self._policies, attachment.policy_id),
            )
            block.attr("stack_id", stack_ref)
            blocks.append(block)

        for dependency in stack.depends_on:
            kind = "spacelift_stack_dependency"
            block = _resource(kind, self._names.claim(kind, f"{stack_name}_{dependency.id}"))
            block.attr("stack_id", stack_ref)
            block.attr(
                "depends_on_stack_id",
                self._ref("spacelift_stack", self._stacks, dependency.depends_on_stack_id),
            )
            blocks.append(block)

        for attachment in stack.attached_aws_integrations:
            kind = "spacelift_aws_integration_attachment"
            block = _resource(kind, self._names.claim(kind, f"{stack_name}_{attachment.id}"))
            block.attr(
                "integration_id",
                self._ref("spacelift_aws_integration", self._aws, attachment.integration_id),
            )
            block.attr("stack_id", stack_ref)
            block.attr("read", attachment.read)
            block.attr("write", attachment.write)
            blocks.append(block)

        for attachment in stack.attached_azure_integrations:
            kind = "spacelift_azure_integration_attachment"
            block = _resource(kind, self._names.claim(kind, f"{stack_name}_{attachment.id}"))
            block.attr(
                "integration_id",
                self._ref(
                    "spacelift_azure_integration", self._azure, attachment.integration_id
                ),
            )
            block.attr("stack_id", stack_ref)
            block.attr("read", attachment.read)
            block.attr("write", attachment.write)
            block.optional("subscription_id", attachment.subscription_id)
            blocks.append(block)
        return blocks

    def _aws_block(self, integration: AWSIntegration) -> _Block:
        block = _resource("spacelift_aws_integration", self._aws[integration.id])
        block.attr("name", integration.name)
        block.attr("role_arn", integration.role_arn)
        block.optional("duration_seconds", integration.duration_seconds or None)
        block.attr(
            "generate_credentials_in_worker", integration.generate_credentials_in_worker
        )
        block.optional("external_id", integration.external_id)
        block.attr("space_id", self._space_ref(integration.space))
        block.optional("labels", list(integration.labels))
        return block

    def _azure_block(self, integration: AzureIntegration) -> _Block:
        block = _resource("spacelift_azure_integration", self._azure[integration.id])
        block.attr("name", integration.name)
        block.attr("tenant_id", integration.tenant_id)
        block.optional("default_subscription_id", integration.default_subscription_id)
        block.attr("space_id", self._space_ref(integration.space))
        block.optional("labels", list(integration.labels))
        return block

    # -- Files ----------------------------------------------------------------

    @staticmethod
    def _section(title: str, blocks: Iterable[_Block]) -> list[str]:
        rendered = [b.render() for b in blocks]
        if not rendered:
            return []
        return [f"# {'-' * 75}\n# {title}\n# {'-' * 75}"] + rendered

    def render_main(self) -> str:
        """Render ``main.tf``; must run before the variable files are rendered."""
        self._assign_names()
        sections: list[str] = []
        sections += self._section(
            "Spaces",
            (self._space_block(s) for s in self.manifest.spaces if not s.is_root),
        )
        sections += self._section(
            "Contexts",
            (b for c in self.manifest.contexts for b in self._context_blocks(c)),
        )
        sections += self._section(
            "Policies", (self._policy_block(p) for p in self.manifest.policies)
        )
        sections += self._section(
            "Cloud integrations",
            [self._aws_block(i) for i in self.manifest.aws_integrations]
            + [self._azure_block(i) for i in self.manifest.azure_integrations],
        )
        sections += self._section(
            "Stacks", (self._stack_block(s) for s in self.manifest.stacks)
        )
        sections += self._section(
            "Stack attachments",
            (b for s in self.manifest.stacks for b in self._stack_attachment_blocks(s)),
        )
        header = f"# Generated by spacebridge from {self.manifest.source_url}\n"
        return header + "\n\n" + "\n\n".join(sections) + "\n"

    def render_variables(self) -> str:
        blocks = []
        for variable, context, element in self._secrets:
            block = _Block(f'variable "{variable}"')
            block.attr("type", Expression("string"))
            block.attr("sensitive", True)
            block.attr("description", f"{element.id} in context {context.name}")
            blocks.append(block.render())
        if not blocks:
            return "# No secret values were found in the exported contexts.\n"
        return "\n\n".join(blocks) + "\n"

    def render_secrets_template(self) -> str:
        lines = [
            "# Fill in the secret values below, then rename this file to",
            "# secrets.auto.tfvars. Never commit the filled-in file.",
            "",
        ]
        for variable, context, element in self._secrets:
            kind = "file" if element.is_file_mount else "env"
            lines.append(f"# {context.name}: {element.id} ({kind})")
            lines.append(f'{variable} = ""')
        return "\n".join(lines) + "\n"

    def render_provider(self) -> str:
        terraform = _Block("terraform")
        providers = _Block("required_providers", indent=2)
        providers.lines.append(" " * 4 + "spacelift = {")
        providers.lines.append(" " * 6 + f"source = {hcl_string(PROVIDER_SOURCE)}")
        providers.lines.append(" " * 4 + "}")
        terraform.nested(providers)

        provider = _Block('provider "spacelift"')
        if self.destination is not None and self.destination.url:
            provider.attr("api_key_endpoint", self.destination.url)
        else:
            provider.comment("Set SPACELIFT_API_KEY_ENDPOINT for the destination account")
        provider.comment("Credentials are read from SPACELIFT_API_KEY_ID")
        provider.comment("and SPACELIFT_API_KEY_SECRET")
        return terraform.render() + "\n\n" + provider.render() + "\n"

    def render_autodeploy_re_enable(self) -> str | None:
        """Override blocks turning autodeploy back on, or None if not needed.

        The file only takes effect once renamed to end in ``_override.tf``,
        where Terraform merges it into the stack blocks of ``main.tf``.
        """
        if not self.disabled:
            return None
        stacks = [s for s in self.manifest.stacks if s.autodeploy]
        if not stacks:
            return None
        lines = [
            "# Re-enables autodeploy on stacks that had it in the source account.",
            "# After state migration, rename to autodeploy_re_enable_override.tf",
            "# and apply.",
            "",
        ]
        blocks = [
            _resource("spacelift_stack", self._stacks[s.id]).attr("autodeploy", True).render()
            for s in stacks
        ]
        return "\n".join(lines) + "\n\n".join(blocks) + "\n"

    def generate(self) -> list[Path]:
        """Write all files into ``output_dir``.

        Returns:
            Paths of the files written, in write order.

        Raises:
            GenerationError: If the output cannot be written.
        """
        files = {MAIN_FILE: self.render_main()}
        files[VARIABLES_FILE] = self.render_variables()
        files[SECRETS_TEMPLATE_FILE] = self.render_secrets_template()
        files[PROVIDER_FILE] = self.render_provider()
        autodeploy = self.render_autodeploy_re_enable()
        if autodeploy is not None:
            files[AUTODEPLOY_FILE] = autodeploy

        written = []
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            for name, content in files.items():
                path = self.output_dir / name
                path.write_text(content, encoding="utf-8")
                written.append(path)
        except OSError as e:
            raise GenerationError(
                f"failed to write generated code to {self.output_dir}: {e}"
            ) from e

        log_with_context(
            logging.INFO,
            f"Generated {len(written)} files in {self.output_dir}",
            secrets=len(self._secrets),
        )
        return written
