from .constraints import MaxNorm
from .constraints import MinMaxNorm
from .constraints import NonNegative
from .constraints import UnitNorm
from .constraints import CONSTRAINTS
from .constraints import is_constraint
from .constraints import constraint_to_config
from .constraints import constraint_from_config

from .projections import PROJECTIONS
from .projections import project
from .projections import row_norms

from .binding import ParamRole
from .binding import ParameterGroupBinding
from .binding import as_role
from .binding import bind_layer
from .binding import bind_network
from .binding import resolve_constraints
from .binding import get_constraints
from .binding import get_parameter_roles

from .scheduler import apply_constraints
from .scheduler import ConstraintScheduler

__all__ = [
    "MaxNorm",
    "MinMaxNorm",
    "NonNegative",
    "UnitNorm",
    "CONSTRAINTS",
    "is_constraint",
    "constraint_to_config",
    "constraint_from_config",
    "PROJECTIONS",
    "project",
    "row_norms",
    "ParamRole",
    "ParameterGroupBinding",
    "as_role",
    "bind_layer",
    "bind_network",
    "resolve_constraints",
    "get_constraints",
    "get_parameter_roles",
    "apply_constraints",
    "ConstraintScheduler",
]
