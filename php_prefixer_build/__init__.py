"""
PHP-Prefixer Build - prefix a PHP project and publish the result.

This package transforms a source repository with the PHP-Prefixer CLI and
publishes the output to a parallel `prefixed` branch/tag lineage, skipping
work that is already up to date.
"""

__version__ = "1.0.0"
__description__ = "PHP-Prefixer Build - prefixed branch/tag lineage publisher"


def main():
    from .cli import main as cli_main
    return cli_main()


__all__ = ["main"]
