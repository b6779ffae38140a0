from BoundLearn.core.errors import ConfigurationError
from BoundLearn.nn.stateful import Stateful
from BoundLearn.nn.initializations import ALL_INITIALIZATIONS, distribution_to_config, distribution_from_config
from BoundLearn.nn.optim.optimizers import SGD, BaseOptimizer, optimizer_to_config, optimizer_from_config
from BoundLearn.nn.constraints.binding import ParamRole, as_role, as_constraints
from BoundLearn.nn.constraints.constraints import constraint_to_config, constraint_from_config


class NetworkConfig(Stateful):
    """
    Network-wide settings: seed, updater, initialization defaults and the
    default constraint groups inherited by parameters that declare none.

    Args:
        seed (int, optional): RNG seed applied by `Network.init()`.
        updater (BaseOptimizer, optional): Defaults to SGD(learning_rate=0.01).
        weight_init (str): Default weight initialization. Defaults to "xavier".
        dist (Distribution, optional): Default distribution for weight_init="distribution".
        bias_init (float): Default constant bias value.
        constraints: Default descriptors for every parameter.
        weight_constraints: Default descriptors for weights.
        bias_constraints: Default descriptors for biases.
    """
    def __init__(self, seed=None, updater=None, weight_init="xavier", dist=None, bias_init=0.0,
                 constraints=None, weight_constraints=None, bias_constraints=None):
        if weight_init.lower() not in ALL_INITIALIZATIONS:
            raise ConfigurationError(f"Unsupported weight initialization '{weight_init}'. "
                                     f"Available: {list(ALL_INITIALIZATIONS.keys())}")
        if updater is not None and not isinstance(updater, BaseOptimizer):
            raise ConfigurationError(f"updater must be a BaseOptimizer, got {type(updater).__name__}")

        self.seed = None if seed is None else int(seed)
        self.updater = updater if updater is not None else SGD(learning_rate=0.01)
        self.weight_init = weight_init
        self.dist = dist
        self.bias_init = float(bias_init)

        # role -> tuple of descriptors, in declaration order
        self.default_constraints = {}
        for role, group in (
            (ParamRole.ALL, constraints),
            (ParamRole.WEIGHT, weight_constraints),
            (ParamRole.BIAS, bias_constraints),
        ):
            group = as_constraints(group)
            if group:
                self.add_default_constraints(role, *group)

    def add_default_constraints(self, role, *constraints):
        """
        Declare the network-wide default group for `role`.

        Raises:
            ConfigurationError: `role` already has a default group, or no
                descriptors were given.
        """
        role = as_role(role)
        group = as_constraints(constraints)
        if not group:
            raise ConfigurationError(f"No constraints given for network default role '{role.value}'")
        if role in self.default_constraints:
            existing = ", ".join(str(c) for c in self.default_constraints[role])
            raise ConfigurationError(
                f"Network-wide default for role '{role.value}' is already set ({existing})"
            )
        self.default_constraints[role] = group
        return self

    def get_config(self):
        return {
            "seed": self.seed,
            "updater": optimizer_to_config(self.updater),
            "weight_init": self.weight_init,
            "dist": distribution_to_config(self.dist),
            "bias_init": self.bias_init,
            "default_constraints": [
                {"role": role.value, "constraints": [constraint_to_config(c) for c in group]}
                for role, group in self.default_constraints.items()
            ],
        }

    @classmethod
    def from_config(cls, cfg):
        conf = cls(
            seed=cfg.get("seed"),
            updater=optimizer_from_config(cfg["updater"]) if cfg.get("updater") else None,
            weight_init=cfg.get("weight_init", "xavier"),
            dist=distribution_from_config(cfg.get("dist")),
            bias_init=cfg.get("bias_init", 0.0),
        )
        for entry in cfg.get("default_constraints", []):
            conf.add_default_constraints(
                entry["role"], *(constraint_from_config(c) for c in entry["constraints"])
            )
        return conf

    def __eq__(self, other):
        if not isinstance(other, NetworkConfig):
            return NotImplemented
        return self.get_config() == other.get_config()

    __hash__ = None

    def __repr__(self):
        return f"NetworkConfig({self.get_config()!r})"
