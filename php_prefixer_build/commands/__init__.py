"""
External command collaborators of the build: composer, file synchronization
and the PHP-Prefixer CLI.
"""

from .composer import ComposerHelper, DependencyInstaller
from .file_sync import copy_version_control_dir, mirror, strip_paths
from .prefixer_cli import PhpPrefixerCommand, Transformer

__all__ = [
    'ComposerHelper',
    'DependencyInstaller',
    'copy_version_control_dir',
    'mirror',
    'strip_paths',
    'PhpPrefixerCommand',
    'Transformer'
]
