# -*- encoding: utf-8 -*-

# PLN Staging: preservation network staging server
# Copyright (C) 2014 Antonin Delpeuch
#
# This program is free software; you can redistribute it and/or
# modify it under the terms of the GNU General Public License
# as published by the Free Software Foundation; either version 2
# of the License, or (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program; if not, write to the Free Software
# Foundation, Inc., 51 Franklin Street, Fifth Floor, Boston, MA  02110-1301, USA.
#



import hashlib
import logging
import re
import redis
from datetime import datetime
from datetime import timedelta

from django.conf import settings


logger = logging.getLogger('plnstaging.' + __name__)


def redis_lock(lock_id, timeout):
    """
    Returns a Redis lock shared by all the workers.
    """
    client = redis.StrictRedis(
            host=settings.REDIS_HOST, port=settings.REDIS_PORT,
            db=settings.REDIS_DB, password=settings.REDIS_PASSWORD)
    return client.lock(lock_id, timeout=timeout)


# Run a task at most one at a time


class run_only_once(object):

    def __init__(self, base_id, **kwargs):
        self.base_id = base_id
        self.keys = kwargs.get('keys', [])
        self.timeout = int(kwargs.get('timeout', 60*60*12))

    def __call__(self, f):
        def inner(*args, **kwargs):
            lock_id = self.base_id+'-' + \
                ('-'.join([str(kwargs.get(key, 'none')) for key in self.keys]))
            lock = redis_lock(lock_id, self.timeout)
            have_lock = False
            result = None
            try:
                have_lock = lock.acquire(blocking=False)
                if have_lock:
                    result = f(*args, **kwargs)
                else:
                    logger.info('%s is already running, skipping' % lock_id)
            finally:
                if have_lock:
                    lock.release()
            return result
        inner.__name__ = f.__name__
        inner.__doc__ = f.__doc__
        return inner


def new_hash(checksum_type):
    """
    Returns a hashlib object for a checksum type as journals and the
    network spell it ('sha1', 'SHA-1', 'md5'…).

    :raises ValueError: if the algorithm is not supported
    """
    name = (checksum_type or '').lower().replace('-', '')
    try:
        return hashlib.new(name)
    except ValueError:
        raise ValueError('Unsupported checksum type %s' % checksum_type)


def file_checksum(path, checksum_type, chunk_size=64*1024):
    """
    Computes the checksum of a file, reading it by chunks.

    :returns: the upper-case hexadecimal digest
    """
    h = new_hash(checksum_type)
    with open(path, 'rb') as f:
        for chunk in iter(lambda: f.read(chunk_size), b''):
            h.update(chunk)
    return h.hexdigest().upper()


version_re = re.compile(r'\d+')


def version_tuple(version):
    """
    Turns a version string such as '3.1.2.0' into a tuple of integers
    that can be compared. Non numeric parts are ignored, ``None`` gives
    an empty tuple.
    """
    if not version:
        return ()
    return tuple(int(part) for part in version_re.findall(version))


def with_speed_report(generator, name=None, report_delay=timedelta(seconds=10)):
    """
    Periodically reports the speed at which we are enumerating the items
    of a generator.

    :param name: a name to use in the reports (eg "deposits harvested")
    :param report_delay: print a report every so often
    """
    if name is None:
        name = getattr(generator, "__name__", "")
    last_report = datetime.now()
    nb_records_since_last_report = 0
    for idx, record in enumerate(generator):
        yield record
        nb_records_since_last_report += 1
        now = datetime.now()
        if last_report + report_delay < now:
            rate = nb_records_since_last_report / float((now - last_report).total_seconds())
            logger.info('{}: {}, {} records/sec'.format(name, idx, rate))
            last_report = now
            nb_records_since_last_report = 0


def group_by_batches(generator, batch_size=100):
    """
    Given a generator, returns a generator of groups of at most batch_size elements.
    """
    current_batch = []
    for item in generator:
        current_batch.append(item)
        if len(current_batch) == batch_size:
            yield current_batch
            current_batch = []
    if current_batch:
        yield current_batch
