"""
pipeline package - end-to-end runs of the load, reshape, summarize and render stages.
"""

from platetidy.pipeline.data_pipeline import PipelineResult, run_pipeline, run_pipeline_from_yaml

__all__ = [
    'PipelineResult',
    'run_pipeline',
    'run_pipeline_from_yaml',
]
