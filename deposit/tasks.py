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



import logging

from celery import shared_task
from django.conf import settings

from backend.utils import run_only_once
from deposit.cleanup import CleanupSweeper
from deposit.pipeline import PipelineRunner

logger = logging.getLogger('plnstaging.' + __name__)


# Both tasks share the same lock: the cleanup must not remove files
# the pipeline is working on.

@shared_task(name='run_all_stages')
@run_only_once('deposit_pipeline')
def run_all_stages():
    """
    Runs every stage of the pipeline over the deposits waiting for it.
    """
    results = PipelineRunner().run_all()
    for stage, counts in results.items():
        if counts:
            logger.info('%s: %s', stage, dict(counts))


@shared_task(name='clean_deposits')
@run_only_once('deposit_pipeline')
def clean_deposits():
    """
    Removes the files of the deposits the network holds. Files are only
    removed if ``PLN_CLEANUP_FORCE`` is set.
    """
    CleanupSweeper().run(force=settings.PLN_CLEANUP_FORCE)
