"""Domain models for secret item templates."""
from dataclasses import dataclass, field
from typing import Any, Dict, List


def placeholder(param_name: str) -> str:
    """Return the token that marks a param inside a template string."""
    return f"$({param_name})"


def _text(value: Any) -> str:
    """Config scalar as a string; only a missing value becomes empty."""
    return "" if value is None else str(value)


def replace_parameter(param_name: str, value: str, template: str) -> str:
    return template.replace(placeholder(param_name), value)


@dataclass
class FieldSpec:
    """A named value produced by running cmd."""
    name: str = ""
    cmd: str = ""

    def to_dict(self) -> Dict[str, str]:
        data = {}
        if self.name:
            data["name"] = self.name
        if self.cmd:
            data["cmd"] = self.cmd
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldSpec":
        if not isinstance(data, dict):
            raise TypeError(f"expected a mapping with name and cmd, got {data!r}")
        return cls(name=_text(data.get("name")), cmd=_text(data.get("cmd")))


@dataclass
class SecretItem:
    """
    A secret item definition.

    Before expansion the string attributes may contain $(param) placeholders;
    after expansion every item is concrete and is never mutated again.
    """
    item_name: str
    fields: List[FieldSpec] = field(default_factory=list)
    attachments: List[FieldSpec] = field(default_factory=list)
    password: str = ""
    notes: str = ""
    params: Dict[str, List[str]] = field(default_factory=dict)

    def clone(self) -> "SecretItem":
        """Return a copy that shares no lists or dicts with this item."""
        return SecretItem(
            item_name=self.item_name,
            fields=[FieldSpec(f.name, f.cmd) for f in self.fields],
            attachments=[FieldSpec(a.name, a.cmd) for a in self.attachments],
            password=self.password,
            notes=self.notes,
            params={name: list(values) for name, values in self.params.items()},
        )

    def substitute(self, param_name: str, value: str) -> "SecretItem":
        """
        Return a clone with $(param_name) replaced by value.

        Replacement is literal: a value that itself contains a placeholder
        is left as is.
        """
        item = self.clone()
        item.item_name = replace_parameter(param_name, value, item.item_name)
        for spec in item.fields + item.attachments:
            spec.name = replace_parameter(param_name, value, spec.name)
            spec.cmd = replace_parameter(param_name, value, spec.cmd)
        item.password = replace_parameter(param_name, value, item.password)
        item.notes = replace_parameter(param_name, value, item.notes)
        return item

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"item_name": self.item_name}
        if self.fields:
            data["fields"] = [f.to_dict() for f in self.fields]
        if self.attachments:
            data["attachments"] = [a.to_dict() for a in self.attachments]
        if self.password:
            data["password"] = self.password
        if self.notes:
            data["notes"] = self.notes
        if self.params:
            data["params"] = {name: list(values) for name, values in self.params.items()}
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SecretItem":
        """
        Build an item from one entry of the config file.

        Raises:
            TypeError: If a section has the wrong shape
        """
        fields = data.get("fields") or []
        attachments = data.get("attachments") or []
        params = data.get("params") or {}
        if not isinstance(fields, list) or not isinstance(attachments, list):
            raise TypeError("fields and attachments must be lists of {name, cmd}")
        if not isinstance(params, dict):
            raise TypeError("params must be a mapping of name to a list of values")

        parsed_params = {}
        for name, values in params.items():
            if values is None:
                values = []
            if not isinstance(values, list):
                raise TypeError(f"param {name} must be a list of values")
            parsed_params[str(name)] = [str(v) for v in values]

        return cls(
            item_name=_text(data.get("item_name")),
            fields=[FieldSpec.from_dict(f) for f in fields],
            attachments=[FieldSpec.from_dict(a) for a in attachments],
            password=_text(data.get("password")),
            notes=_text(data.get("notes")),
            params=parsed_params,
        )
