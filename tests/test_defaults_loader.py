"""Tests for loading default variables from YAML."""

import pytest
import tempfile
import yaml
from pathlib import Path

from varcontext import Builder, DefaultVariable, DefaultsLoader, DefaultsValidationError


class TestDefaultsLoader:
    """Test strict validation in the defaults loader."""

    def setup_method(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.workspace = Path(self.temp_dir)
        self.loader = DefaultsLoader()

    def write_defaults(self, content) -> Path:
        """Helper to write a defaults YAML file."""
        path = self.workspace / "defaults.yml"
        with open(path, 'w') as f:
            yaml.dump(content, f)
        return path

    def test_load_mapping_document(self):
        path = self.write_defaults({
            'defaults': [
                {'name': 'region', 'default': 'us-central1'},
                {'name': 'size', 'default': 3, 'overwrite': True},
                {'name': 'count', 'default': '${size * 2}', 'type': 'integer'},
            ]
        })

        defaults = self.loader.load(path)

        assert defaults == [
            DefaultVariable(name='region', default='us-central1'),
            DefaultVariable(name='size', default=3, overwrite=True),
            DefaultVariable(name='count', default='${size * 2}', type='integer'),
        ]

    def test_load_list_document(self):
        defaults = self.loader.loads("- name: a\n  default: x\n- name: b\n")
        assert defaults == [DefaultVariable(name='a', default='x'), DefaultVariable(name='b')]

    def test_empty_document(self):
        assert self.loader.loads("") == []
        assert self.loader.loads("defaults:\n") == []

    def test_yes_no_on_off_stay_strings(self):
        defaults = self.loader.loads(
            "- name: a\n  default: on\n- name: b\n  default: no\n- name: c\n  default: true\n"
        )
        assert [d.default for d in defaults] == ['on', 'no', True]

    def test_overwrite_must_be_boolean(self):
        with pytest.raises(DefaultsValidationError) as exc_info:
            self.loader.loads("- name: a\n  overwrite: yes\n")

        assert exc_info.value.errors[0].path == 'defaults[0]'
        assert "'overwrite' must be a boolean" in exc_info.value.errors[0].message

    def test_all_errors_collected(self):
        document = """
defaults:
  - default: no-name
  - name: a
    type: decimal
  - name: b
    color: blue
  - just-a-string
"""
        with pytest.raises(DefaultsValidationError) as exc_info:
            self.loader.loads(document)

        messages = [(err.path, err.message) for err in exc_info.value.errors]
        assert messages == [
            ('defaults[0]', "'name' is required and must be a non-empty string"),
            ('defaults[1]', "Unknown type 'decimal'. Supported: "
                            "['array', 'boolean', 'integer', 'number', 'object', 'string']"),
            ('defaults[2]', "Unknown field 'color'"),
            ('defaults[3]', "Entry must be a mapping, got str"),
        ]
        assert 'Validation error at defaults[2]: Unknown field' in str(exc_info.value)

    def test_unknown_top_level_field(self):
        with pytest.raises(DefaultsValidationError) as exc_info:
            self.loader.loads("defaults: []\nextra: 1\n")

        assert exc_info.value.errors[0].message == "Unknown field 'extra'"

    def test_defaults_must_be_list(self):
        with pytest.raises(DefaultsValidationError) as exc_info:
            self.loader.loads("defaults: 5\n")

        assert exc_info.value.errors[0].message == "Defaults must be a list of entries"

    def test_malformed_yaml(self):
        with pytest.raises(DefaultsValidationError) as exc_info:
            self.loader.loads("defaults: [unclosed\n")

        assert 'Failed to parse defaults' in str(exc_info.value)

    def test_missing_file(self):
        with pytest.raises(DefaultsValidationError) as exc_info:
            self.loader.load(self.workspace / "missing.yml")

        assert 'Failed to load defaults' in str(exc_info.value)

    def test_loaded_defaults_feed_builder(self):
        path = self.write_defaults({
            'defaults': [
                {'name': 'prefix', 'default': 'svc'},
                {'name': 'name', 'default': '${prefix}-${suffix}'},
                {'name': 'replicas', 'default': '${suffix == "db" and 3 or 1}', 'type': 'integer'},
            ]
        })

        result = (
            Builder()
            .merge_map({'suffix': 'db'})
            .merge_defaults(self.loader.load(path))
            .build_map()
        )

        assert result == {'suffix': 'db', 'prefix': 'svc', 'name': 'svc-db', 'replicas': 3}
