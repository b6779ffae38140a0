import logging

from BoundLearn.nn.constraints.binding import resolve_constraints
from BoundLearn.nn.constraints.projections import project

logger = logging.getLogger(__name__)


def apply_constraints(layer):
    """
    Project every constrained parameter of `layer` back onto its feasible set.

    Descriptors for one parameter are applied in binding order, each one
    receiving the output of the previous one. Parameters with no binding are
    left untouched. Returns the number of projections performed.
    """
    applied = 0
    for key in layer.param_keys():
        constraints = resolve_constraints(layer, key)
        if not constraints:
            continue
        data = layer.get_param(key).data
        for c in constraints:
            data = project(c, data)
        applied += len(constraints)
    return applied


class ConstraintScheduler:
    """
    Runs `apply_constraints` over a network's layers once per optimization step.

    Must be called after the updater has written the new parameter values and
    before the next forward pass. `steps_applied` counts completed calls.
    """
    def __init__(self):
        self.steps_applied = 0

    def step(self, layers):
        total = 0
        for i, layer in enumerate(layers):
            n = apply_constraints(layer)
            if n:
                logger.debug("Step %d: applied %d projection(s) on layer %d (%s)",
                             self.steps_applied, n, i, type(layer).__name__)
            total += n
        self.steps_applied += 1
        return total

    def reset(self):
        self.steps_applied = 0
