from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from uhub.rules.models import Rules


class _UniqueKeyLoader(yaml.SafeLoader):
    """SafeLoader that refuses mappings which repeat a key."""

    def construct_mapping(self, node: yaml.MappingNode, deep: bool = False) -> dict[Any, Any]:
        seen: set[Any] = set()
        for key_node, _ in node.value:
            key = self.construct_object(key_node, deep=deep)
            if key in seen:
                raise yaml.constructor.ConstructorError(
                    "while constructing a mapping",
                    node.start_mark,
                    f"found duplicate key {key!r}",
                    key_node.start_mark,
                )
            seen.add(key)
        return super().construct_mapping(node, deep=deep)


def _strip_fences(content: str) -> str:
    # Accept a rules file embedded in markdown as a ```yaml block
    lines = content.splitlines()
    yaml_lines = []
    in_block = False
    found_block = False

    for line in lines:
        s_line = line.strip()
        if s_line.startswith("```yaml"):
            in_block = True
            found_block = True
            continue
        if in_block and s_line.startswith("```"):
            break
        if in_block:
            yaml_lines.append(line)

    return "\n".join(yaml_lines) if found_block else content


def parse_rules(content: str) -> Rules:
    """
    Parse and validate rules text.
    Raises ValueError on YAML syntax errors, duplicate keys, schema
    violations or an incomplete access matrix.
    """
    try:
        data = yaml.load(_strip_fences(content), Loader=_UniqueKeyLoader)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in rules file: {e}") from e

    try:
        rules = Rules.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Rules validation failed:\n{e}") from e

    # Cross-table checks need the resolver's gating logic
    from uhub.domain.policy import AccessResolver

    AccessResolver(rules).verify()
    return rules


def load_rules(path: Path) -> Rules:
    """
    Load and validate the rules file.
    Raises FileNotFoundError if file missing.
    Raises ValueError if content is invalid.
    """
    if not path.exists():
        raise FileNotFoundError(f"Rules file not found at: {path}")

    with open(path) as f:
        content = f.read()

    return parse_rules(content)
