"""Distribution specifications for simulation and integration grids."""

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

import numpy as np
from numpy.typing import ArrayLike, NDArray

from flexmet.exceptions import InvalidDistributionSpecError


@dataclass(frozen=True)
class DistributionSpec:
    """A distribution callable plus the named arguments to call it with.

    The same record serves two call shapes:

    - sampling, ``func(size=n, **params)``, e.g. ``rng.uniform`` or
      ``rng.normal``;
    - density evaluation, ``func(x, **params)``, e.g. ``scipy.stats.norm.pdf``.

    Attributes
    ----------
    func : callable
        Sampler or density function.
    params : mapping
        Keyword arguments passed on every call.

    Examples
    --------
    >>> rng = np.random.default_rng(1)
    >>> spec = DistributionSpec(rng.uniform, {"low": -1.0, "high": 1.0})
    >>> spec.draw(3).shape
    (3,)
    """

    func: Callable[..., Any]
    params: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not callable(self.func):
            raise InvalidDistributionSpecError(
                f"distribution function must be callable, got {self.func!r}"
            )

    def draw(self, n: int) -> NDArray[np.float64]:
        """Draw ``n`` values."""
        try:
            values = self.func(size=n, **self.params)
        except TypeError as exc:
            raise InvalidDistributionSpecError(
                f"cannot call {self._name} as func(size={n}, **{dict(self.params)}): {exc}"
            ) from exc
        return self._check(values, (n,))

    def density(self, x: ArrayLike) -> NDArray[np.float64]:
        """Evaluate the density at ``x``."""
        x = np.asarray(x, dtype=np.float64)
        try:
            values = self.func(x, **self.params)
        except TypeError as exc:
            raise InvalidDistributionSpecError(
                f"cannot call {self._name} as func(x, **{dict(self.params)}): {exc}"
            ) from exc
        values = self._check(values, x.shape)
        if np.any(values < 0):
            raise InvalidDistributionSpecError(
                f"{self._name} returned negative density values"
            )
        return values

    @property
    def _name(self) -> str:
        return getattr(self.func, "__name__", repr(self.func))

    def _check(self, values: Any, shape: tuple[int, ...]) -> NDArray[np.float64]:
        values = np.asarray(values, dtype=np.float64)
        if values.shape != shape:
            raise InvalidDistributionSpecError(
                f"{self._name} returned shape {values.shape}, expected {shape}"
            )
        if not np.all(np.isfinite(values)):
            raise InvalidDistributionSpecError(
                f"{self._name} returned non-finite values with params {dict(self.params)}"
            )
        return values
