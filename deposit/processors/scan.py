import base64
import binascii
import logging
import os

from lxml import etree

from django.conf import settings

from deposit.processing import DepositProcessor
from deposit.processing import ProcessingError
from deposit.processing import RetryableError
from deposit.processors.xmlvalidate import payload_files

logger = logging.getLogger('plnstaging.' + __name__)

# Magic numbers of executables: Windows PE, ELF, Mach-O, scripts
EXECUTABLE_SIGNATURES = [
    b'MZ',
    b'\x7fELF',
    b'\xfe\xed\xfa\xce',
    b'\xfe\xed\xfa\xcf',
    b'\xce\xfa\xed\xfe',
    b'\xcf\xfa\xed\xfe',
    b'#!',
]


def looks_executable(head):
    return any(head.startswith(sig) for sig in EXECUTABLE_SIGNATURES)


class Scanner(DepositProcessor):
    """
    Looks for content we refuse to forward to the network: files with a
    disallowed extension and executables, in the payload of the bag as
    well as embedded (base64) in the export XML.
    """
    name = 'scan'
    precondition = 'xml-validated'
    postcondition = 'scanned'

    def check_name(self, name):
        extension = os.path.splitext(name)[1].lower()
        disallowed = [e.lower() for e in settings.PLN_SCAN_DISALLOWED_EXTENSIONS]
        if extension and extension in disallowed:
            raise ProcessingError('Disallowed file type: %s' % name)

    def check_content(self, name, head):
        if looks_executable(head):
            raise ProcessingError('Executable content found in %s' % name)

    def scan_embedded(self, path, name):
        """
        Checks the files embedded in an export XML file.

        :returns: the number of embedded files
        """
        count = 0
        try:
            for _, elem in etree.iterparse(path, events=('end',), tag='{*}embed',
                                           huge_tree=True, resolve_entities=False,
                                           no_network=True):
                filename = elem.get('filename', '')
                label = '%s (embedded in %s)' % (filename or 'unnamed file', name)
                if filename:
                    self.check_name(filename)
                if elem.get('encoding', 'base64') == 'base64':
                    try:
                        content = base64.b64decode(elem.text or '')
                    except binascii.Error as e:
                        raise ProcessingError('Invalid base64 content for %s: %s' % (label, e))
                    self.check_content(label, content[:8])
                elem.clear()
                count += 1
        except etree.XMLSyntaxError as e:
            raise ProcessingError('%s is not well-formed: %s' % (name, e))
        return count

    def process(self, deposit):
        bag_path = self.file_paths.processing_bag(deposit)
        try:
            files = payload_files(bag_path)
            embedded = 0
            for path in files:
                name = os.path.relpath(path, bag_path)
                self.check_name(name)
                with open(path, 'rb') as f:
                    self.check_content(name, f.read(8))
                if name.lower().endswith('.xml'):
                    embedded += self.scan_embedded(path, name)
        except OSError as e:
            raise RetryableError('Cannot read the bag: %s' % e)
        self.log('Scanned %d files and %d embedded files' % (len(files), embedded))
