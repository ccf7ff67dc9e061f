"""fern: run tasks declared in fern.yaml files across a directory tree.

- discovery of marker files (`fern.finder`)
- parsing of scalar-or-list task definitions (`fern.leaf`)
- sequential, fail-fast dispatch (`fern.dispatch`)
- seeding new leaves from templates in the global config (`fern.seed`)
"""

__version__ = "0.1.0"

from fern.config import FernSettings

__all__ = ["__version__", "FernSettings"]
