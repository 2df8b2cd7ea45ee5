"""srcbundle core - constants, error taxonomy and input validators.

Import specific names from submodules:
    from srcbundle.core.constants import ErrorCode, TransformMethod
    from srcbundle.core.errors import BundleError, TraversalError
    from srcbundle.core.validators import validate_bundle_config
"""

from srcbundle.core import constants, errors, validators

__all__ = [
    "constants",
    "errors",
    "validators",
]
