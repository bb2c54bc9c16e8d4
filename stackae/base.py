# pylint: disable=missing-docstring
from typing import Any, TypeVar

# Define a type variable that's used correctly
T = TypeVar("T", bound="BaseUnit")

_TRAINABLE_KEYS = ("weight", "bias", "pattern", "importance")


class Trainable:
    """Training-mode switch shared by layers, units, stages and networks."""

    is_training = False

    def start_training(self) -> None:
        self.is_training = True

    def stop_training(self) -> None:
        self.is_training = False


# pylint: disable=too-many-instance-attributes, invalid-name line-too-long missing-docstring
class BaseUnit(Trainable):
    def get_params(self, mode: str = "all") -> Any:
        """
        Get parameters for this unit.

        :param mode: Specifies which parameters to return. Options are:
            - "all": Return all parameters.
            - "trainable": Return only trainable parameters (weights, biases, patterns).
            - "non_trainable": Return only non-trainable parameters (sizes, rates, buffers).
        :return: Dictionary of parameter names mapped to their values.
        """
        if mode == "all":
            return dict(self.__dict__)
        if mode == "trainable":
            return {k: v for k, v in self.__dict__.items() if k in _TRAINABLE_KEYS}
        if mode == "non_trainable":
            return {k: v for k, v in self.__dict__.items() if k not in _TRAINABLE_KEYS}

        raise ValueError(
            f"Invalid mode '{mode}'. Choose from 'all', 'trainable', or 'non_trainable'."
        )

    def set_params(self: T, **params: Any) -> T:
        """
        Set hyper-parameters of this unit.

        :param params: attribute names mapped to their new values
        :return: self
        """
        for param, value in params.items():
            if not hasattr(self, param) or param.startswith("_"):
                raise ValueError(f"Invalid parameter {param}")
            setattr(self, param, value)
        return self
