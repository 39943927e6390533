"""Defaults loader with strict validation of YAML default variable lists."""

import logging
import re
from pathlib import Path
from typing import Any, List, Optional, Union
import yaml

from varcontext.builder import DefaultVariable
from varcontext.exceptions import DefaultsValidationError, ValidationError
from varcontext.types import KNOWN_TYPES


logger = logging.getLogger(__name__)


class PreservingLoader(yaml.SafeLoader):
    """YAML loader that keeps 'on', 'off', 'yes' and 'no' as strings instead of bools."""
    pass


# Only true/false resolve to bools; default values like 'on' or 'no' stay literal
PreservingLoader.yaml_implicit_resolvers = {
    first: [
        (tag, regexp) for tag, regexp in resolvers
        if tag != 'tag:yaml.org,2002:bool'
    ]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
PreservingLoader.add_implicit_resolver(
    'tag:yaml.org,2002:bool',
    re.compile(r'^(?:true|True|TRUE|false|False|FALSE)$'),
    list('tTfF'),
)


class DefaultsLoader:
    """
    Loads default variable declarations from YAML.

    The document is either a list of entries or a mapping with a 'defaults'
    list. Each entry has a required 'name' and optional 'default',
    'overwrite' and 'type' fields:

        defaults:
          - name: region
            default: us-central1
          - name: instance_name
            default: "${prefix}-${counter.next()}"
            overwrite: true
          - name: replicas
            default: "${size == 'large' and 3 or 1}"
            type: integer
    """

    KNOWN_FIELDS = {'name', 'default', 'overwrite', 'type'}

    def __init__(self):
        """Initialize loader."""
        self.errors: List[ValidationError] = []

    def load(self, path: Union[str, Path]) -> List[DefaultVariable]:
        """Load and validate defaults from a YAML file."""
        self.errors = []
        try:
            with open(path, 'r') as f:
                document = yaml.load(f, Loader=PreservingLoader)
        except (OSError, yaml.YAMLError) as e:
            self._add_error(f"Failed to load defaults: {e}")
            self._raise_validation_errors()

        logger.debug(f"Loaded defaults document from {path}")
        return self.parse(document)

    def loads(self, text: str) -> List[DefaultVariable]:
        """Load and validate defaults from a YAML string."""
        self.errors = []
        try:
            document = yaml.load(text, Loader=PreservingLoader)
        except yaml.YAMLError as e:
            self._add_error(f"Failed to parse defaults: {e}")
            self._raise_validation_errors()

        return self.parse(document)

    def parse(self, document: Any) -> List[DefaultVariable]:
        """
        Validate an already decoded document.

        Returns:
            DefaultVariable list in document order

        Raises:
            DefaultsValidationError: With every problem found in the document
        """
        self.errors = []

        if isinstance(document, dict):
            unknown = set(document.keys()) - {'defaults'}
            for key in sorted(unknown, key=str):
                self._add_error(f"Unknown field '{key}'")
            entries = document.get('defaults', [])
        else:
            entries = document

        if entries is None:
            entries = []
        if not isinstance(entries, list):
            self._add_error("Defaults must be a list of entries")
            self._raise_validation_errors()

        defaults = []
        for index, entry in enumerate(entries):
            path = f"defaults[{index}]"
            default = self._validate_entry(entry, path)
            if default is None:
                continue
            defaults.append(default)

        if self.errors:
            self._raise_validation_errors()

        logger.debug(f"Validated {len(defaults)} default variables")
        return defaults

    def _validate_entry(self, entry: Any, path: str) -> Optional[DefaultVariable]:
        """Validate a single entry, recording problems."""
        if not isinstance(entry, dict):
            self._add_error(f"Entry must be a mapping, got {type(entry).__name__}", path)
            return None

        for key in entry.keys():
            if key not in self.KNOWN_FIELDS:
                self._add_error(f"Unknown field '{key}'", path)

        name = entry.get('name')
        valid = True
        if not name or not isinstance(name, str):
            self._add_error("'name' is required and must be a non-empty string", path)
            valid = False

        overwrite = entry.get('overwrite', False)
        if not isinstance(overwrite, bool):
            self._add_error(f"'overwrite' must be a boolean, got {type(overwrite).__name__}", path)
            valid = False

        result_type = entry.get('type')
        if result_type is not None and result_type not in KNOWN_TYPES:
            self._add_error(
                f"Unknown type '{result_type}'. Supported: {sorted(KNOWN_TYPES)}", path
            )
            valid = False

        if not valid:
            return None
        return DefaultVariable(
            name=name,
            default=entry.get('default'),
            overwrite=overwrite,
            type=result_type,
        )

    def _add_error(self, message: str, path: str = ""):
        """Add validation error."""
        self.errors.append(ValidationError(message, path))

    def _raise_validation_errors(self):
        """Raise DefaultsValidationError with accumulated errors."""
        raise DefaultsValidationError(self.errors)

