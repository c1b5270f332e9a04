"""
This module follows the deposits sent by the journals, from the moment
a journal notifies us to the confirmation that the preservation network
holds a copy.

It is built around :class:`~models.Deposit`, whose ``state`` field
moves along a fixed pipeline, and :class:`~pipeline.PipelineRunner`, which
runs the :class:`~processing.DepositProcessor` of each stage over all the
deposits waiting for it.

Each processor lives in :mod:`deposit.processors`. Processors only work
on files whose paths are given by :class:`~filepaths.FilePaths`, and only
change deposits through the lifecycle methods of
:class:`~models.Deposit`. The runner saves the deposits in batches
through a :class:`~store.DepositStore`.
"""
