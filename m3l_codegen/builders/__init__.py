"""
Target builders.

Importing this package registers the bundled builders.
"""

from .base import (
    BaseBuilder,
    BuilderConfig,
    BUILDER_REGISTRY,
    available_builders,
    get_builder,
    prepare_output_dir,
    register_builder,
    run_builder,
    setup_jinja_env,
)
from .sql import SqlBuilder, SqlBuilderConfig
from .typescript import TypeScriptBuilder, TypeScriptBuilderConfig

__all__ = [
    'BaseBuilder',
    'BuilderConfig',
    'BUILDER_REGISTRY',
    'available_builders',
    'get_builder',
    'prepare_output_dir',
    'register_builder',
    'run_builder',
    'setup_jinja_env',
    'SqlBuilder',
    'SqlBuilderConfig',
    'TypeScriptBuilder',
    'TypeScriptBuilderConfig',
]
