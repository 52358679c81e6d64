"""
Unit tests for the shared YAML config helpers.
"""
import pytest

from panel_config import ConfigError, log_level, positive_number, read_config_file, section


class TestReadConfigFile:
    """Test read_config_file"""

    def test_reads_mapping(self, tmp_path):
        path = tmp_path / 'panel.yml'
        path.write_text("server:\n  port: 9090\n")

        assert read_config_file(str(path)) == {'server': {'port': 9090}}

    def test_missing_file(self, tmp_path):
        """Should return None unless the file is required"""
        path = str(tmp_path / 'absent.yml')

        assert read_config_file(path) is None
        with pytest.raises(ConfigError, match='not found'):
            read_config_file(path, require=True)

    def test_empty_file(self, tmp_path):
        path = tmp_path / 'panel.yml'
        path.write_text("")

        assert read_config_file(str(path)) == {}

    @pytest.mark.parametrize('text,message', [
        ("server: [unclosed\n", 'Invalid YAML'),
        ("- a\n- b\n", 'must contain a mapping'),
    ])
    def test_invalid_documents(self, tmp_path, text, message):
        path = tmp_path / 'panel.yml'
        path.write_text(text)

        with pytest.raises(ConfigError, match=message):
            read_config_file(str(path))

    def test_directory_is_unreadable(self, tmp_path):
        with pytest.raises(ConfigError, match='Cannot read'):
            read_config_file(str(tmp_path))


class TestValueHelpers:
    """Test section, positive_number and log_level"""

    def test_absent_section_is_empty(self):
        assert section({'server': None}, 'server') == {}
        assert section({}, 'logging') == {}

    def test_section_must_be_mapping(self):
        with pytest.raises(ConfigError, match="Section 'agent'"):
            section({'agent': ['web1']}, 'agent')

    def test_positive_number(self):
        assert positive_number({'interval': 15}, 'interval', 30) == 15
        assert positive_number({}, 'interval', 30) == 30
        assert positive_number({'timeout': '2.5'}, 'timeout', 10.0, kind=float) == 2.5

    @pytest.mark.parametrize('value', [0, -1, 'soon', None, True])
    def test_positive_number_rejects(self, value):
        with pytest.raises(ConfigError, match='interval'):
            positive_number({'interval': value}, 'interval', 30)

    def test_log_level_case_insensitive(self):
        assert log_level({'level': 'debug'}, 'INFO') == 'DEBUG'
        assert log_level({}, 'INFO') == 'INFO'

    def test_log_level_unknown(self):
        with pytest.raises(ConfigError, match='Invalid log level'):
            log_level({'level': 'LOUD'}, 'INFO')
