class Stateful:
    """
    Save/restore protocol shared by layers, updaters, distributions and the
    network config.

    `get_config()` holds the constructor arguments (what the object *is*) and
    goes into `configuration.json`. `state_dict()` holds arrays and counters
    (what the object has *learned*) and goes into the binary blocks.
    """

    def state_dict(self):
        return {}

    def load_state_dict(self, state):
        pass

    def get_config(self):
        return {}

    @classmethod
    def from_config(cls, cfg):
        # errors imports nothing from nn, but core/__init__ pulls in Parameter
        from BoundLearn.core.errors import ConfigurationError

        cfg = {k: v for k, v in cfg.items() if k != "type"}
        try:
            return cls(**cfg)
        except TypeError as e:
            raise ConfigurationError(f"Invalid {cls.__name__} config {cfg}: {e}") from e
