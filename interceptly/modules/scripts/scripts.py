from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, conint, field_validator

from ...errors import ScriptNotFoundError

PACKAGED_SCRIPTS_DIR = Path(__file__).resolve().parent.parent.parent / "scripts"

SUPPORTED_SHELLS = ("posix", "fish", "powershell")

_PLACEHOLDER = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


class VariableSpec(BaseModel):
    name: str
    required: bool = False
    default: Optional[str] = None


class ScriptSpec(BaseModel):
    """A bootstrap script template as stored in a ``*.script.yaml`` file."""

    version: conint(ge=1)
    name: str
    shell: str
    content: str
    variables: List[VariableSpec] = Field(default_factory=list)
    metadata: Dict[str, str] = Field(default_factory=dict)

    @field_validator("shell")
    @classmethod
    def shell_must_be_supported(cls, v: str) -> str:
        if v not in SUPPORTED_SHELLS:
            raise ValueError(f"shell must be one of {', '.join(SUPPORTED_SHELLS)}")
        return v

    def bind(self, values: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """
        Merge caller values with declared defaults.

        Values for undeclared names pass through unchanged, so a template
        may use anything the interceptor provides.

        Raises:
            ValueError: If a required variable has no value
        """
        bound = dict(values or {})
        for variable in self.variables:
            if variable.name in bound:
                continue
            if variable.default is not None:
                bound[variable.name] = variable.default
            elif variable.required:
                raise ValueError(f"Script {self.name} needs a value for {variable.name}")
        return bound

    def render(self, values: Optional[Dict[str, str]] = None) -> str:
        bound = self.bind(values)
        # Unknown placeholders stay as written
        return _PLACEHOLDER.sub(lambda m: bound.get(m.group(1), m.group(0)), self.content)


def load_spec(path: str) -> ScriptSpec:
    with open(path, "r", encoding="utf-8") as f:
        return ScriptSpec(**(yaml.safe_load(f) or {}))


def _env_name(interceptor_id: str) -> str:
    return re.sub(r"[^A-Za-z0-9]", "_", interceptor_id).upper()


def candidate_paths(interceptor_id: str, state_dir: Optional[str] = None) -> List[str]:
    """Return candidate file paths to search for a script spec."""
    filename = f"{interceptor_id}.script.yaml"
    return [
        os.getenv(f"INTERCEPTLY_{_env_name(interceptor_id)}_SCRIPT_FILE"),  # Per-interceptor override
        os.path.join(state_dir, "scripts", filename) if state_dir else None,  # User override
        str(PACKAGED_SCRIPTS_DIR / filename),  # Packaged default
    ]


def render_script(
    interceptor_id: str,
    variables: Optional[Dict[str, str]] = None,
    state_dir: Optional[str] = None,
) -> str:
    """Render the bootstrap script an interceptor serves from /setup.

    The first existing file wins:
    - INTERCEPTLY_<ID>_SCRIPT_FILE
    - <state_dir>/scripts/<id>.script.yaml
    - the packaged interceptly/scripts/<id>.script.yaml

    A missing or invalid spec raises; there is no built-in fallback
    content for a shell.
    """
    searched = [path for path in candidate_paths(interceptor_id, state_dir) if path]
    existing = next((path for path in searched if os.path.isfile(path)), None)
    if existing is None:
        raise ScriptNotFoundError(interceptor_id, searched)
    return load_spec(existing).render(variables)
