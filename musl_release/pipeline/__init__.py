"""Release pipeline stages, state machine and orchestration.

Typical usage::

    from musl_release.pipeline.orchestrator import ReleasePipeline

"""
