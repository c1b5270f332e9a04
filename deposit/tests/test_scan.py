import base64
import pytest

from deposit.processors.scan import Scanner
from deposit.processors.scan import looks_executable


@pytest.fixture
def scanned(file_paths, harvested, make_bag, run_until):
    """
    Returns a function building a deposit from payload files and
    running the scanner on it.
    """
    def scan(files):
        deposit = harvested(make_bag(files=files))
        run_until(deposit, 'xml-validated')
        return deposit, Scanner(file_paths=file_paths).run(deposit)
    return scan


@pytest.mark.parametrize('head,executable', [
    (b'MZ\x90\x00\x03\x00\x00\x00', True),
    (b'\x7fELF\x02\x01\x01\x00', True),
    (b'#!/bin/sh', True),
    (b'%PDF-1.4', False),
    (b'', False),
])
def test_looks_executable(head, executable):
    assert looks_executable(head) == executable


class TestScanner:
    """
    Tests the detection of content we do not forward
    """

    def test_clean(self, scanned, sample_export_xml):
        deposit, result = scanned({'export.xml': sample_export_xml()})
        assert result.outcome == 'advance'
        assert deposit.state == 'scanned'
        assert 'Scanned 1 files and 1 embedded files' in deposit.processing_log

    def test_disallowed_extension(self, scanned, sample_export_xml):
        deposit, result = scanned({'export.xml': sample_export_xml(), 'SETUP.EXE': b'hello'})
        assert result.outcome == 'fail'
        assert result.message == 'Disallowed file type: data/SETUP.EXE'
        assert deposit.failed_state == 'xml-validated'

    def test_configured_extensions(self, settings, scanned, sample_export_xml):
        settings.PLN_SCAN_DISALLOWED_EXTENSIONS = ['.txt']
        deposit, result = scanned({'export.xml': sample_export_xml(), 'notes.txt': b'hello'})
        assert result.outcome == 'fail'

    def test_executable_payload(self, scanned, sample_export_xml):
        deposit, result = scanned({'export.xml': sample_export_xml(),
                                   'notes.txt': b'MZ\x90\x00\x03\x00\x00\x00'})
        assert result.outcome == 'fail'
        assert result.message == 'Executable content found in data/notes.txt'

    def test_embedded_executable(self, scanned, sample_export_xml):
        deposit, result = scanned({'export.xml': sample_export_xml(b'\x7fELF\x02\x01\x01\x00')})
        assert result.outcome == 'fail'
        assert 'article.pdf (embedded in data/export.xml)' in result.message

    def test_embedded_disallowed_name(self, scanned, sample_export_xml):
        xml = sample_export_xml().replace(b'article.pdf', b'article.exe')
        deposit, result = scanned({'export.xml': xml})
        assert result.outcome == 'fail'
        assert result.message == 'Disallowed file type: article.exe'

    def test_invalid_base64(self, scanned, sample_export_xml):
        content = b'%PDF-1.4 plain'
        xml = sample_export_xml(content).replace(base64.b64encode(content), b'!!!notbase64')
        deposit, result = scanned({'export.xml': xml})
        assert result.outcome == 'fail'
        assert result.message.startswith('Invalid base64 content for article.pdf')
