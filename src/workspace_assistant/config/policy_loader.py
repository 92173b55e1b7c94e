"""Load and validate the confirmation policy from YAML.

The policy file is optional: when it does not exist the built-in
``ActionPolicy`` defaults apply. A file that exists but is invalid is an
error, so a typo never silently disables confirmations.
"""

from pathlib import Path

import structlog
from pydantic import ValidationError

from workspace_assistant.config.loader import ConfigLoadError, load_yaml_file
from workspace_assistant.governance.models import ActionPolicy

log = structlog.get_logger(__name__)


class ActionPolicyError(ConfigLoadError):
    """Raised when the action policy cannot be loaded or validated."""

    pass


def load_action_policy(policy_path: Path | str | None = None) -> ActionPolicy:
    """Load the confirmation policy.

    Args:
        policy_path: Path to the YAML file. If None, uses
            ``settings.action_policy_path``.

    Returns:
        Validated ActionPolicy.

    Raises:
        ActionPolicyError: If the file exists but cannot be parsed or validated.

    Example:
        >>> from workspace_assistant.config.policy_loader import load_action_policy
        >>> policy = load_action_policy()
        >>> "delete" in policy.high_impact_verbs
        True
    """
    if policy_path is None:
        from workspace_assistant.config import settings  # noqa: PLC0415

        policy_path = settings.action_policy_path
    path = Path(policy_path)

    if not path.exists():
        log.info("action_policy_defaults_used", policy_path=str(path))
        return ActionPolicy()

    if not path.is_file():
        raise ActionPolicyError(f"Action policy path is not a file: {path}")

    content = load_yaml_file(path, error_class=ActionPolicyError)
    policy_data = content.get("confirmation", content)

    try:
        policy = ActionPolicy.model_validate(policy_data)
    except ValidationError as e:
        error_summary = "\n".join(
            f"{' -> '.join(str(loc) for loc in error['loc'])}: {error['msg']}"
            for error in e.errors()
        )
        raise ActionPolicyError(
            f"Action policy validation failed ({path}):\n{error_summary}"
        ) from None

    log.info(
        "action_policy_loaded",
        policy_path=str(path),
        high_impact_verbs=len(policy.high_impact_verbs),
        always_confirm_tools=len(policy.always_confirm_tools),
    )
    return policy
