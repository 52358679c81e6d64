"""
Unit tests for the panel_logging library.
"""

import json
import logging
import sys
import tempfile
from pathlib import Path

import pytest

from panel_logging.logger import JSONFormatter, setup_logging, validate_log_format


def make_record(level=logging.INFO, msg='Sample stored', exc_info=None, pathname='ingest.py', func=None):
    return logging.LogRecord(
        name='panel_hub.ingest',
        level=level,
        pathname=pathname,
        lineno=42,
        msg=msg,
        args=(),
        exc_info=exc_info,
        func=func
    )


def render(record):
    return json.loads(JSONFormatter().format(record))


class TestJSONFormatter:
    """Test JSONFormatter"""

    def test_core_fields(self):
        """Every line carries time, level, logger name and message"""
        data = render(make_record())

        assert data['level'] == 'INFO'
        assert data['logger'] == 'panel_hub.ingest'
        assert data['message'] == 'Sample stored'
        assert data['timestamp'].endswith('Z')

    def test_timestamp_from_record(self):
        """Should render the record's creation time in canonical UTC form"""
        record = make_record()
        record.created = 0.5

        assert render(record)['timestamp'] == '1970-01-01T00:00:00.500000Z'

    def test_request_context(self):
        """Should copy the context passed through extra"""
        record = make_record(msg='Request handled')
        record.context = {'method': 'POST', 'path': '/api/metrics', 'status': 200}

        data = render(record)

        assert data['context'] == {'method': 'POST', 'path': '/api/metrics', 'status': 200}

    def test_no_context_key_without_extra(self):
        assert 'context' not in render(make_record())

    def test_storage_failure_traceback(self):
        """Should attach type, message and traceback of a logged exception"""
        try:
            raise RuntimeError('database is locked')
        except RuntimeError:
            exc_info = sys.exc_info()

        data = render(make_record(level=logging.ERROR, msg='Failed to save metrics', exc_info=exc_info))

        assert data['exception']['type'] == 'RuntimeError'
        assert data['exception']['message'] == 'database is locked'
        assert 'Traceback' in data['exception']['traceback']

    def test_debug_records_point_at_source(self):
        record = make_record(level=logging.DEBUG, pathname='/srv/panel/api.py', func='ingest')

        assert render(record)['source'] == {'file': '/srv/panel/api.py', 'line': 42, 'function': 'ingest'}

    @pytest.mark.parametrize('level', [logging.INFO, logging.WARNING, logging.ERROR])
    def test_source_hidden_above_debug(self, level):
        assert 'source' not in render(make_record(level=level))

    def test_unencodable_context_values(self):
        """Should fall back to str() for values json cannot encode"""
        record = make_record()
        record.context = {'path': Path('/tmp/panel.db')}

        assert render(record)['context']['path'] == '/tmp/panel.db'


class TestSetupLogging:
    """Test setup_logging"""

    def teardown_method(self):
        setup_logging(level=logging.WARNING)

    def test_configures_root_level(self):
        """Should set the root logger level from a level name"""
        root = setup_logging(level='debug')

        assert root is logging.getLogger()
        assert root.level == logging.DEBUG

    def test_repeated_calls_do_not_stack_handlers(self):
        """Should replace its own handlers instead of adding more"""
        setup_logging()
        count = len(logging.getLogger().handlers)

        setup_logging()

        assert len(logging.getLogger().handlers) == count

    def test_writes_json_to_file(self):
        """Should write JSON lines to the configured log file"""
        with tempfile.TemporaryDirectory() as tmpdir:
            log_file = Path(tmpdir) / 'hub.log'
            setup_logging(log_file=str(log_file))

            logging.getLogger('panel_hub.test_file').info('Hub started')
            for handler in logging.getLogger().handlers:
                handler.flush()

            lines = log_file.read_text().strip().splitlines()
            assert validate_log_format(lines[-1])
            assert json.loads(lines[-1])['message'] == 'Hub started'

            setup_logging(level=logging.WARNING)

    def test_plain_text_lines(self, tmp_path):
        log_file = tmp_path / 'agent.log'
        setup_logging(log_file=str(log_file), use_json=False)

        logging.getLogger('panel_agent.test_plain').warning('Push failed, sample dropped')
        setup_logging(level=logging.WARNING)

        output = log_file.read_text()
        assert 'WARNING' in output
        assert 'Push failed, sample dropped' in output
        assert validate_log_format(output.strip()) is False

    def test_rejects_unknown_level(self):
        with pytest.raises(ValueError):
            setup_logging(level='LOUD')


class TestValidateLogFormat:
    """Test validate_log_format"""

    LINE = {
        'timestamp': '2026-10-18T05:54:00.000000Z',
        'level': 'INFO',
        'logger': 'panel_hub.api',
        'message': 'Request handled',
    }

    def test_accepts_formatter_output(self):
        assert validate_log_format(JSONFormatter().format(make_record())) is True
        assert validate_log_format(json.dumps(self.LINE)) is True

    @pytest.mark.parametrize('field', ['timestamp', 'level', 'logger', 'message'])
    def test_rejects_missing_field(self, field):
        line = {k: v for k, v in self.LINE.items() if k != field}

        assert validate_log_format(json.dumps(line)) is False

    def test_rejects_unknown_level(self):
        assert validate_log_format(json.dumps(dict(self.LINE, level='NOTICE'))) is False

    @pytest.mark.parametrize('line', ['Hub started on 0.0.0.0:8080', '["INFO", "Hub started"]', ''])
    def test_rejects_non_objects(self, line):
        assert validate_log_format(line) is False
