"""Compilation mode definitions and the mode registry."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, Mapping

from core.config_loader import normalize_string_list

from .errors import ModeValidationError

GO_FAMILY = "go"
TINYGO_FAMILY = "tinygo"
FAMILIES = (GO_FAMILY, TINYGO_FAMILY)

FAST_ROLE = "fast"
DEBUG_ROLE = "debug"
SIZE_ROLE = "size"
ROLES = (FAST_ROLE, DEBUG_ROLE, SIZE_ROLE)

_ROLE_FAMILIES = {
    FAST_ROLE: GO_FAMILY,
    DEBUG_ROLE: TINYGO_FAMILY,
    SIZE_ROLE: TINYGO_FAMILY,
}


@dataclass(frozen=True, slots=True)
class ModeDefinition:
    role: str
    token: str
    family: str
    command: str
    arguments: tuple[str, ...] = ()
    environment: Mapping[str, str] = field(default_factory=dict)
    description: str = ""
    success_message: str = ""

    @property
    def requires_secondary_toolchain(self) -> bool:
        return self.family == TINYGO_FAMILY

    @classmethod
    def from_mapping(cls, role: str, data: Mapping[str, Any]) -> "ModeDefinition":
        if role not in _ROLE_FAMILIES:
            joined = ", ".join(ROLES)
            raise ValueError(f"Unknown mode role '{role}'. Valid roles: {joined}")
        if not isinstance(data, Mapping):
            raise TypeError(f"Mode '{role}' definition must be a mapping")

        allowed_keys = {"token", "command", "arguments", "environment", "description", "success_message"}
        unknown = {str(key) for key in data.keys() if str(key) not in allowed_keys}
        if unknown:
            joined = ", ".join(sorted(unknown))
            raise ValueError(f"Mode '{role}' contains unknown keys: {joined}")

        token = str(data.get("token", "")).strip()
        if not token:
            raise ValueError(f"Mode '{role}' must define a non-empty token")
        if any(char.isspace() for char in token):
            raise ValueError(f"Mode '{role}' token must not contain whitespace: '{token}'")

        family = _ROLE_FAMILIES[role]
        command = str(data.get("command") or family).strip()

        environment: Dict[str, str] = {}
        env_section = data.get("environment")
        if isinstance(env_section, Mapping):
            environment = {str(key): str(value) for key, value in env_section.items()}
        elif env_section is not None:
            raise TypeError(f"Mode '{role}' environment must be a mapping")

        return cls(
            role=role,
            token=token,
            family=family,
            command=command,
            arguments=tuple(normalize_string_list(data.get("arguments"), field_name=f"modes.{role}.arguments")),
            environment=environment,
            description=str(data.get("description") or ""),
            success_message=str(data.get("success_message") or f"Switched to {role} mode"),
        )

    def merge(self, overrides: Mapping[str, Any]) -> "ModeDefinition":
        allowed_keys = {"token", "command", "arguments", "environment", "description", "success_message"}
        unknown = {str(key) for key in overrides.keys() if str(key) not in allowed_keys}
        if unknown:
            joined = ", ".join(sorted(unknown))
            raise ValueError(f"Mode '{self.role}' override contains unknown keys: {joined}")

        changes: Dict[str, Any] = {}
        if "token" in overrides:
            token = str(overrides["token"]).strip()
            if not token or any(char.isspace() for char in token):
                raise ValueError(f"Mode '{self.role}' token must be a non-empty word, got '{overrides['token']}'")
            changes["token"] = token
        if overrides.get("command"):
            changes["command"] = str(overrides["command"]).strip()
        if "arguments" in overrides:
            changes["arguments"] = tuple(
                normalize_string_list(overrides["arguments"], field_name=f"modes.{self.role}.arguments")
            )
        env_section = overrides.get("environment")
        if isinstance(env_section, Mapping):
            environment = dict(self.environment)
            environment.update({str(key): str(value) for key, value in env_section.items()})
            changes["environment"] = environment
        elif env_section is not None:
            raise TypeError(f"Mode '{self.role}' environment must be a mapping")
        for key in ("description", "success_message"):
            if overrides.get(key):
                changes[key] = str(overrides[key])
        return replace(self, **changes)


def _build_builtin_definitions() -> Dict[str, ModeDefinition]:
    raw: Dict[str, Mapping[str, Any]] = {
        FAST_ROLE: {
            "token": "L",
            "arguments": ["-tags", "dev"],
            "environment": {"GOOS": "js", "GOARCH": "wasm"},
            "description": "Go standard compiler: fastest builds, largest binary, full standard library",
            "success_message": "Switched to fast mode (Go, large binary)",
        },
        DEBUG_ROLE: {
            "token": "M",
            "arguments": ["-target", "wasm", "-opt=1"],
            "description": "TinyGo with debug information: medium binary, easier debugging",
            "success_message": "Switched to debug mode (TinyGo, medium binary)",
        },
        SIZE_ROLE: {
            "token": "S",
            "arguments": ["-target", "wasm", "-opt=z", "-no-debug", "-panic=trap"],
            "description": "TinyGo size-optimized: smallest binary, no debug information",
            "success_message": "Switched to size mode (TinyGo, small binary)",
        },
    }
    return {role: ModeDefinition.from_mapping(role, data) for role, data in raw.items()}


class ModeRegistry:
    """Holds exactly one mode per role and resolves tokens to definitions."""

    def __init__(self, definitions: Mapping[str, ModeDefinition] | None = None) -> None:
        self._by_role: Dict[str, ModeDefinition] = dict(definitions or _build_builtin_definitions())
        missing = [role for role in ROLES if role not in self._by_role]
        if missing:
            raise ValueError(f"Mode registry is missing roles: {', '.join(missing)}")
        errors = self.validate()
        if errors:
            raise ValueError("; ".join(errors))

    @classmethod
    def with_builtins(cls) -> "ModeRegistry":
        return cls(_build_builtin_definitions())

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any] | None) -> "ModeRegistry":
        registry = cls.with_builtins()
        if mapping:
            registry.merge_from_mapping(mapping)
        return registry

    def merge_from_mapping(self, mapping: Mapping[str, Any]) -> None:
        updated = dict(self._by_role)
        for raw_role, raw_value in mapping.items():
            role = str(raw_role).strip().lower()
            if role not in updated:
                joined = ", ".join(ROLES)
                raise ValueError(f"Unknown mode role '{raw_role}'. Valid roles: {joined}")
            if not isinstance(raw_value, Mapping):
                raise TypeError(f"Mode '{role}' override must be a mapping")
            updated[role] = updated[role].merge(raw_value)
        previous = self._by_role
        self._by_role = updated
        errors = self.validate()
        if errors:
            self._by_role = previous
            raise ValueError("; ".join(errors))

    def validate(self) -> list[str]:
        errors: list[str] = []
        seen: Dict[str, str] = {}
        for role in ROLES:
            token = self._by_role[role].token
            for other_token, other_role in seen.items():
                if other_token.casefold() == token.casefold():
                    errors.append(f"Modes '{other_role}' and '{role}' share the token '{token}'")
            seen[token] = role
        return errors

    def tokens(self) -> tuple[str, ...]:
        return tuple(self._by_role[role].token for role in ROLES)

    def definitions(self) -> Iterable[ModeDefinition]:
        return tuple(self._by_role[role] for role in ROLES)

    def normalize(self, token: str) -> str:
        text = str(token).strip()
        folded = text.casefold()
        for candidate in self.tokens():
            if candidate.casefold() == folded:
                return candidate
        return text

    def validate_token(self, token: str) -> None:
        if token not in self.tokens():
            raise ModeValidationError(token, self.tokens())

    def get(self, token: str) -> ModeDefinition:
        for definition in self._by_role.values():
            if definition.token == token:
                return definition
        raise ModeValidationError(token, self.tokens())

    def by_role(self, role: str) -> ModeDefinition:
        return self._by_role[role]

    def requires_secondary(self, token: str) -> bool:
        return self.get(token).requires_secondary_toolchain

    def default_mode(self) -> ModeDefinition:
        return self._by_role[FAST_ROLE]

    def default_for_family(self, family: str) -> ModeDefinition:
        if family == TINYGO_FAMILY:
            return self._by_role[DEBUG_ROLE]
        return self._by_role[FAST_ROLE]


__all__ = [
    "DEBUG_ROLE",
    "FAMILIES",
    "FAST_ROLE",
    "GO_FAMILY",
    "ModeDefinition",
    "ModeRegistry",
    "ROLES",
    "SIZE_ROLE",
    "TINYGO_FAMILY",
]
