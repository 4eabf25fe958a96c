__all__ = [
    "BackwardMoveError",
    "BaseNdSpaceError",
    "BoundsCheckError",
    "IllegalRankError",
    "InvalidArgumentError",
    "InvalidSelectionError",
    "NegativeStepError",
    "ReadOnlyError",
]


class BaseNdSpaceError(ValueError):
    """
    Base error which all ndspace argument errors are sub-classed from.
    """

    _msg: str = "{}"

    def __init__(self, *args: object) -> None:
        """
        If a single string argument is passed, treat it as a pre-formatted message.

        If multiple arguments are passed, they are used as arguments for a template string class
        variable.
        """
        if len(args) == 1 and isinstance(args[0], str):
            super().__init__(args[0])
        else:
            super().__init__(self._msg.format(*args))


class InvalidArgumentError(BaseNdSpaceError):
    """
    Raised when an argument is malformed or incompatible with the array it is applied to.
    """


class IllegalRankError(InvalidArgumentError, IndexError):
    """
    Raised when a coordinate tuple does not have the length expected for the array rank.
    """

    _msg = "Length of coordinates {!r} does not match the rank {}"


class InvalidSelectionError(InvalidArgumentError, IndexError):
    """
    Raised when index expressions cannot be applied to a dimensional space.
    """


class NegativeStepError(InvalidSelectionError):
    _msg = "only ranges with step >= 1 are supported, got {}"


class BackwardMoveError(InvalidArgumentError):
    """
    Raised when a hydration or initialization cursor is asked to move backward.
    """

    _msg = "Cannot move backward during array {}: {!r} is before {!r}"


class BoundsCheckError(IndexError):
    def __init__(self, index: int | str, dim_len: int | None = None) -> None:
        if dim_len is None:
            super().__init__(index)
        else:
            super().__init__(f"index {index} out of bounds for dimension with length {dim_len}")


class ReadOnlyError(PermissionError):
    def __init__(self) -> None:
        super().__init__("object is read-only")
