"""
End-to-end certificate pipeline: configuration, processor and CLI.

Import submodules directly (``src.pipeline.config_loader``,
``src.pipeline.processor``); this package does not re-export them so that
stage modules can depend on the configuration without import cycles.
"""
