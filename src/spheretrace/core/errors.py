"""Exceptions raised by the rendering core.

Both errors are fatal for the render that raised them. They are reported
to the caller and never retried or silently corrected.
"""


class GeometryError(RuntimeError):
    """A ray reached a material with a non-finite or zero-length direction.

    Attributes:
        pixel: The (i, j) pixel whose path produced the bad direction,
            or None when the ray was traced outside an image.
    """

    def __init__(self, message: str, pixel: tuple[int, int] | None = None) -> None:
        super().__init__(message)
        self.pixel = pixel


class RadiometricRangeError(RuntimeError):
    """An averaged pixel channel fell outside [0, 1] before gamma correction.

    Attributes:
        pixel: The (i, j) pixel holding the offending value.
        channel: The color channel index (0 = R, 1 = G, 2 = B).
        value: The offending linear value.
    """

    def __init__(self, pixel: tuple[int, int], channel: int, value: float) -> None:
        super().__init__(
            f"Pixel {pixel} channel {'RGB'[channel]} = {value} is outside [0, 1]"
        )
        self.pixel = pixel
        self.channel = channel
        self.value = value
