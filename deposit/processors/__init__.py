"""
The processors of the stages of the pipeline, one module per stage.
Their order is defined in :mod:`deposit.pipeline`.
"""
