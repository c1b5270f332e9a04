import logging
import os

from lxml import etree

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from deposit.processing import DepositProcessor
from deposit.processing import ProcessingError
from deposit.processing import RetryableError

logger = logging.getLogger('plnstaging.' + __name__)


def xml_parser():
    """
    The parser used for the files sent by journals: exports can be huge,
    and we never resolve entities or fetch anything from the network.
    """
    return etree.XMLParser(huge_tree=True, resolve_entities=False, no_network=True)


def payload_dir(bag_path):
    data = os.path.join(bag_path, 'data')
    if not os.path.isdir(data):
        raise ProcessingError('The bag has no payload directory')
    return data


def payload_files(bag_path, extension=None):
    """
    Paths of the files in the payload of a bag, sorted.
    """
    data = payload_dir(bag_path)
    found = []
    for dirpath, dirnames, filenames in os.walk(data):
        for filename in filenames:
            if extension is None or filename.lower().endswith(extension):
                found.append(os.path.join(dirpath, filename))
    return sorted(found)


class XmlValidator(DepositProcessor):
    """
    Checks that the XML export files in the bag are well-formed and,
    when ``PLN_XML_SCHEMA`` is set, valid against that schema.
    """
    name = 'validate-xml'
    precondition = 'bag-validated'
    postcondition = 'xml-validated'

    def __init__(self, file_paths=None):
        super(XmlValidator, self).__init__(file_paths)
        self.schema = None

    def prepare(self):
        path = settings.PLN_XML_SCHEMA
        if not path:
            return
        try:
            self.schema = etree.XMLSchema(etree.parse(path))
        except (OSError, etree.XMLSyntaxError, etree.XMLSchemaParseError) as e:
            raise ImproperlyConfigured('Cannot load the XML schema %s: %s' % (path, e))

    def process(self, deposit):
        bag_path = self.file_paths.processing_bag(deposit)
        files = payload_files(bag_path, '.xml')
        if not files:
            raise ProcessingError('No XML file in the bag')

        parser = xml_parser()
        for path in files:
            name = os.path.relpath(path, bag_path)
            try:
                document = etree.parse(path, parser)
            except etree.XMLSyntaxError as e:
                raise ProcessingError('%s is not well-formed: %s' % (name, e))
            except OSError as e:
                raise RetryableError('Cannot read %s: %s' % (name, e))

            if self.schema is not None and not self.schema.validate(document):
                errors = '; '.join('line %d: %s' % (err.line, err.message)
                                   for err in list(self.schema.error_log)[:10])
                raise ProcessingError('%s is not valid: %s' % (name, errors))
            self.log('%s is valid' % name)
