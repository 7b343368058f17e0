import typing


class SolverConfig(typing.NamedTuple):
    """
    Convergence settings shared by value iteration and visitation propagation.

    Attributes:
        queue_capacity (int): Maximum number of live entries in the sweeping queue.
                              Updates that would exceed it are dropped and picked up
                              again by the full sweep of a later annealing round.
        min_value_error (float): Final TD-error threshold of value iteration.
        min_state_dist_error (float): Final change threshold of the visitation propagation.
        max_iterations (int): Cap on queue pops per annealing round.
        annealing_rounds (int): Number of sweep-then-drain rounds. The threshold starts at
                                `min_error * 2**(annealing_rounds - 1)` and halves each round.
    """
    queue_capacity: int = 10000
    min_value_error: float = 0.001
    min_state_dist_error: float = 0.0001
    max_iterations: int = 1000000
    annealing_rounds: int = 7

    def thresholds(self, min_error: float) -> typing.List[float]:
        """Annealed thresholds, coarsest first, ending at `min_error`."""
        return [min_error * 2 ** (self.annealing_rounds - 1 - i) for i in range(self.annealing_rounds)]


class TrainerConfig(typing.NamedTuple):
    """
    Settings of the MaxEnt IRL trainer.

    Attributes:
        gradient_clip (float): Elementwise bound applied to every weight update.
        gradient_decay (float): Geometric decay of the step size per epoch.
        alpha (float): Softmax temperature of the planners used to estimate gradients.
                       0 plans greedily.
        initial_unique_cost (float): Total initial mass of the per-action offset term,
                                     spread evenly over the actions.
        solver (SolverConfig): Settings of the planners owned by the workers.
    """
    gradient_clip: float = 3.0
    gradient_decay: float = 0.99
    alpha: float = 0.0
    initial_unique_cost: float = 0.1
    solver: SolverConfig = SolverConfig()
