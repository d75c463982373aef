"""FMP item parameter containers and Greek <-> b conversion.

Two parameterizations describe the same item response function:

- b form: category intercepts ``b0_1 .. b0_{ncat-1}`` followed by the
  polynomial coefficients ``b1 .. b_{2k+1}`` of ``m(theta)``.
- Greek form: thresholds ``xi``, log-slope ``omega`` and ``k`` filter pairs
  ``(alpha, tau)`` with

      m'(theta) = exp(omega) * prod_s (1 - 2 alpha_s theta + (alpha_s^2 + exp(tau_s)) theta^2)

  Every factor is positive for finite ``tau``, so ``m`` is monotonic by
  construction. ``tau = -inf`` switches the filter to a perfect square.

Both matrix containers are rectangular with NaN padding; item ``i`` only ever
uses the cells selected by ``k[i]`` and ``ncat[i]``.
"""

from dataclasses import dataclass
from typing import ClassVar, NamedTuple, Sequence

import numpy as np
from numpy.polynomial import polynomial as P
from numpy.typing import ArrayLike, NDArray

from flexmet.constants import PAD_VALUE, ROOT_TOLERANCE
from flexmet.exceptions import NotInvertibleError, ShapeMismatchError


class GreekParameters(NamedTuple):
    """Greek-letter parameters of a single item."""

    xi: NDArray[np.float64]
    omega: float
    alpha: NDArray[np.float64]
    tau: NDArray[np.float64]

    @property
    def k(self) -> int:
        return len(self.alpha)

    @property
    def ncat(self) -> int:
        return len(self.xi) + 1


def expand_per_item(
    value: ArrayLike, n_items: int, name: str
) -> NDArray[np.int_]:
    """Broadcast a scalar or per-item integer specification to ``n_items``."""
    arr = np.atleast_1d(np.asarray(value))
    if arr.ndim != 1 or arr.size not in (1, n_items):
        raise ShapeMismatchError(
            f"{name} must either have 1 or n_items ({n_items}) elements, "
            f"got shape {np.shape(value)}"
        )
    if not np.all(np.equal(np.mod(arr, 1), 0)):
        raise ValueError(f"{name} must contain integers, got {arr}")
    arr = arr.astype(np.int_)
    if arr.size == 1:
        arr = np.repeat(arr, n_items)
    return arr


@dataclass(frozen=True, eq=False)
class _ItemMatrix:
    """Rectangular per-item parameter storage with explicit k and ncat."""

    values: NDArray[np.float64]
    k: NDArray[np.int_]
    ncat: NDArray[np.int_]

    form: ClassVar[str] = ""

    def __post_init__(self) -> None:
        values = np.array(self.values, dtype=np.float64, ndmin=2)
        if values.ndim != 2:
            raise ShapeMismatchError(
                f"{self.form} matrix must be 2D, got {values.ndim}D"
            )
        n_items = values.shape[0]
        k = expand_per_item(self.k, n_items, "k")
        ncat = expand_per_item(self.ncat, n_items, "ncat")

        if np.any(k < 0):
            raise ValueError(f"k must be non-negative, got {k}")
        if np.any(ncat < 2):
            raise ValueError(f"ncat must be at least 2, got {ncat}")

        expected = self._width(int(k.max()), int(ncat.max()))
        if values.shape[1] != expected:
            raise ShapeMismatchError(
                f"{self.form} matrix has {values.shape[1]} columns, expected "
                f"{expected} for maxk={k.max()} and maxncat={ncat.max()}"
            )

        values.setflags(write=False)
        k.setflags(write=False)
        ncat.setflags(write=False)
        object.__setattr__(self, "values", values)
        object.__setattr__(self, "k", k)
        object.__setattr__(self, "ncat", ncat)

    @staticmethod
    def _width(maxk: int, maxncat: int) -> int:
        raise NotImplementedError

    @property
    def n_items(self) -> int:
        return self.values.shape[0]

    @property
    def maxk(self) -> int:
        return int(self.k.max())

    @property
    def maxncat(self) -> int:
        return int(self.ncat.max())

    def __len__(self) -> int:
        return self.n_items

    def subset(self, items: Sequence[int]) -> "_ItemMatrix":
        """Matrix restricted to ``items``, re-padded to the subset's widths."""
        items = list(items)
        if not items:
            raise ValueError("items must select at least one item")
        rows = [self.row(i) for i in items]
        return type(self).from_rows(rows, self.k[items], self.ncat[items])

    def row(self, item: int) -> NDArray[np.float64]:
        raise NotImplementedError

    @classmethod
    def from_rows(
        cls,
        rows: Sequence[ArrayLike],
        k: ArrayLike,
        ncat: ArrayLike = 2,
    ) -> "_ItemMatrix":
        raise NotImplementedError


@dataclass(frozen=True, eq=False)
class BMatrix(_ItemMatrix):
    """Item parameters in the b (polynomial coefficient) parameterization.

    Parameters
    ----------
    values : ndarray of shape (n_items, maxncat - 1 + 2 * maxk + 1)
        Intercepts in the first ``maxncat - 1`` columns, slope coefficients
        ``b1 .. b_{2 maxk + 1}`` in the remaining columns.
    k : int or array_like of int
        Item complexity, scalar or one per item.
    ncat : int or array_like of int, default=2
        Number of response categories, scalar or one per item.

    Examples
    --------
    >>> bmat = BMatrix([[0.5, 1.2], [-0.3, 0.8]], k=0)
    >>> bmat.slopes(1)
    array([0.8])
    """

    ncat: NDArray[np.int_] = 2  # type: ignore[assignment]

    form: ClassVar[str] = "b"

    @staticmethod
    def _width(maxk: int, maxncat: int) -> int:
        return (maxncat - 1) + (2 * maxk + 1)

    def intercepts(self, item: int) -> NDArray[np.float64]:
        """Category intercepts ``b0_1 .. b0_{ncat-1}`` of ``item``."""
        return self.values[item, : self.ncat[item] - 1]

    def slopes(self, item: int) -> NDArray[np.float64]:
        """Coefficients ``b1 .. b_{2k+1}`` of ``item``."""
        start = self.maxncat - 1
        return self.values[item, start : start + 2 * self.k[item] + 1]

    def row(self, item: int) -> NDArray[np.float64]:
        """Unpadded b-vector of ``item``."""
        return np.concatenate([self.intercepts(item), self.slopes(item)])

    @property
    def column_names(self) -> list[str]:
        n_slopes = 2 * self.maxk + 1
        if self.maxncat == 2:
            return [f"b{j}" for j in range(n_slopes + 1)]
        return [f"b0_{v}" for v in range(1, self.maxncat)] + [
            f"b{j}" for j in range(1, n_slopes + 1)
        ]

    @classmethod
    def from_rows(
        cls,
        rows: Sequence[ArrayLike],
        k: ArrayLike,
        ncat: ArrayLike = 2,
    ) -> "BMatrix":
        """Build a padded matrix from unpadded per-item b-vectors."""
        n_items = len(rows)
        k = expand_per_item(k, n_items, "k")
        ncat = expand_per_item(ncat, n_items, "ncat")
        maxk, maxncat = int(k.max()), int(ncat.max())

        values = np.full((n_items, cls._width(maxk, maxncat)), PAD_VALUE)
        for i, row in enumerate(rows):
            row = np.asarray(row, dtype=np.float64)
            n_int = ncat[i] - 1
            n_slope = 2 * k[i] + 1
            if row.shape != (n_int + n_slope,):
                raise ShapeMismatchError(
                    f"item {i}: b-vector has shape {row.shape}, expected "
                    f"({n_int + n_slope},) for k={k[i]} and ncat={ncat[i]}"
                )
            values[i, :n_int] = row[:n_int]
            values[i, maxncat - 1 : maxncat - 1 + n_slope] = row[n_int:]
        return cls(values, k, ncat)


@dataclass(frozen=True, eq=False)
class GreekMatrix(_ItemMatrix):
    """Item parameters in the Greek-letter parameterization.

    Columns are ``xi1 .. xi_{maxncat-1}, omega, alpha1, tau1, ..., alpha_maxk,
    tau_maxk``.
    """

    ncat: NDArray[np.int_] = 2  # type: ignore[assignment]

    form: ClassVar[str] = "Greek"

    @staticmethod
    def _width(maxk: int, maxncat: int) -> int:
        return (maxncat - 1) + 1 + 2 * maxk

    def parameters(self, item: int) -> GreekParameters:
        start = self.maxncat
        n_filter = self.k[item]
        pairs = self.values[item, start : start + 2 * n_filter]
        return GreekParameters(
            xi=self.values[item, : self.ncat[item] - 1].copy(),
            omega=float(self.values[item, self.maxncat - 1]),
            alpha=pairs[0::2].copy(),
            tau=pairs[1::2].copy(),
        )

    def row(self, item: int) -> NDArray[np.float64]:
        """Unpadded Greek vector ``[xi..., omega, alpha1, tau1, ...]`` of ``item``."""
        pars = self.parameters(item)
        pairs = np.column_stack([pars.alpha, pars.tau]).ravel()
        return np.concatenate([pars.xi, [pars.omega], pairs])

    @property
    def column_names(self) -> list[str]:
        names = [f"xi{v}" for v in range(1, self.maxncat)] + ["omega"]
        for s in range(1, self.maxk + 1):
            names += [f"alpha{s}", f"tau{s}"]
        return names

    @classmethod
    def from_rows(
        cls,
        rows: Sequence[ArrayLike],
        k: ArrayLike,
        ncat: ArrayLike = 2,
    ) -> "GreekMatrix":
        """Build a padded matrix from unpadded per-item Greek vectors."""
        n_items = len(rows)
        k = expand_per_item(k, n_items, "k")
        ncat = expand_per_item(ncat, n_items, "ncat")
        maxk, maxncat = int(k.max()), int(ncat.max())

        values = np.full((n_items, cls._width(maxk, maxncat)), PAD_VALUE)
        for i, row in enumerate(rows):
            row = np.asarray(row, dtype=np.float64)
            n_xi = ncat[i] - 1
            expected = n_xi + 1 + 2 * k[i]
            if row.shape != (expected,):
                raise ShapeMismatchError(
                    f"item {i}: Greek vector has shape {row.shape}, expected "
                    f"({expected},) for k={k[i]} and ncat={ncat[i]}"
                )
            values[i, :n_xi] = row[:n_xi]
            values[i, maxncat - 1] = row[n_xi]
            values[i, maxncat : maxncat + 2 * k[i]] = row[n_xi + 1 :]
        return cls(values, k, ncat)

    @classmethod
    def from_parameters(
        cls, parameters: Sequence[GreekParameters]
    ) -> "GreekMatrix":
        """Build a matrix from a sequence of per-item ``GreekParameters``."""
        rows = []
        for pars in parameters:
            pairs = np.column_stack([pars.alpha, pars.tau]).ravel()
            rows.append(np.concatenate([pars.xi, [pars.omega], pairs]))
        k = [p.k for p in parameters]
        ncat = [p.ncat for p in parameters]
        return cls.from_rows(rows, k, ncat)


def greek2b(
    xi: ArrayLike,
    omega: float,
    alpha: ArrayLike | None = None,
    tau: ArrayLike | None = None,
) -> NDArray[np.float64]:
    """Convert Greek-letter parameters of one item to its b-vector.

    Parameters
    ----------
    xi : array_like
        ``ncat - 1`` category thresholds (the intercepts ``b0``).
    omega : float
        Log of the linear coefficient ``b1``.
    alpha, tau : array_like, optional
        ``k`` filter parameters each. ``tau`` may hold ``-inf``.

    Returns
    -------
    ndarray of shape (ncat - 1 + 2k + 1,)
        ``[b0_1, ..., b0_{ncat-1}, b1, ..., b_{2k+1}]``.
    """
    xi = np.atleast_1d(np.asarray(xi, dtype=np.float64))
    alpha = np.atleast_1d(np.asarray([] if alpha is None else alpha, dtype=np.float64))
    tau = np.atleast_1d(np.asarray([] if tau is None else tau, dtype=np.float64))

    if xi.size < 1:
        raise ShapeMismatchError("xi must hold at least one threshold")
    if alpha.shape != tau.shape:
        raise ShapeMismatchError(
            f"alpha and tau must have the same length, got {alpha.size} and {tau.size}"
        )

    derivative = np.ones(1)
    for a, t in zip(alpha, tau):
        derivative = np.convolve(derivative, [1.0, -2.0 * a, a * a + np.exp(t)])

    powers = np.arange(1, derivative.size + 1)
    slopes = np.exp(omega) * derivative / powers
    return np.concatenate([xi, slopes])


def b2greek(
    bvec: ArrayLike,
    ncat: int = 2,
    k: int | None = None,
) -> GreekParameters:
    """Convert the b-vector of one item to Greek-letter parameters.

    The derivative of ``m`` divided by ``b1`` is factored into quadratic
    filters. Filter pairs come back sorted by ascending ``tau`` (ties broken
    by ascending ``alpha``); a repeated real root yields ``tau = -inf``.

    The roots of a filter with finite ``tau`` have imaginary parts
    ``exp(tau / 2)``. Below ``ROOT_TOLERANCE`` (relative to the root size)
    they cannot be told apart from a repeated real root, so ``tau`` below
    about ``2 * log(ROOT_TOLERANCE)``, roughly -32, comes back as ``-inf``.

    Parameters
    ----------
    bvec : array_like
        ``[b0_1, ..., b0_{ncat-1}, b1, ..., b_{2k+1}]``.
    ncat : int, default=2
        Number of response categories.
    k : int, optional
        Item complexity; inferred from the length of ``bvec`` if omitted.

    Returns
    -------
    GreekParameters

    Raises
    ------
    ShapeMismatchError
        If the length of ``bvec`` disagrees with ``ncat`` and ``k``.
    NotInvertibleError
        If ``b1 <= 0`` or the derivative has distinct real roots.
    """
    bvec = np.atleast_1d(np.asarray(bvec, dtype=np.float64))
    if ncat < 2:
        raise ValueError(f"ncat must be at least 2, got {ncat}")

    n_slopes = bvec.size - (ncat - 1)
    if k is None:
        if n_slopes < 1 or n_slopes % 2 == 0:
            raise ShapeMismatchError(
                f"b-vector of length {bvec.size} does not fit ncat={ncat}"
            )
        k = (n_slopes - 1) // 2
    elif n_slopes != 2 * k + 1:
        raise ShapeMismatchError(
            f"b-vector of length {bvec.size} does not match k={k} and ncat={ncat} "
            f"(expected {ncat - 1 + 2 * k + 1})"
        )

    xi = bvec[: ncat - 1].copy()
    slopes = bvec[ncat - 1 :]
    b1 = slopes[0]
    if not np.isfinite(slopes).all():
        raise NotInvertibleError(f"b-vector contains non-finite values: {bvec}")
    if b1 <= 0:
        raise NotInvertibleError(
            f"b1 must be positive for a monotonic polynomial, got {b1}"
        )
    omega = float(np.log(b1))

    if k == 0:
        return GreekParameters(xi, omega, np.zeros(0), np.zeros(0))

    # Normalized derivative 1 + p1 x + ... + p_2k x^2k. Its reversed
    # coefficients have roots z with factors (1 - z x)(1 - conj(z) x),
    # so alpha = Re(z) and exp(tau) = Im(z)^2.
    derivative = slopes * np.arange(1, 2 * k + 2) / b1
    z = P.polyroots(derivative[::-1])

    scale = np.maximum(1.0, np.abs(z))
    is_real = np.abs(z.imag) <= ROOT_TOLERANCE * scale
    upper = z[~is_real & (z.imag > 0)]
    lower = z[~is_real & (z.imag < 0)]
    real = np.sort(z[is_real].real)

    if upper.size != lower.size:
        raise NotInvertibleError(f"unpaired complex filter roots: {z}")
    if real.size % 2:
        raise NotInvertibleError(
            f"derivative of m has a simple real root, polynomial is not monotonic: {z}"
        )
    first, second = real[0::2], real[1::2]
    tol = np.sqrt(ROOT_TOLERANCE) * np.maximum(1.0, np.abs(first))
    if np.any(np.abs(first - second) > tol):
        raise NotInvertibleError(
            f"derivative of m has distinct real roots {real}, "
            "polynomial is not monotonic"
        )

    alpha = np.concatenate([upper.real, (first + second) / 2])
    with np.errstate(divide="ignore"):
        tau = np.concatenate([np.log(upper.imag**2), np.full(first.size, -np.inf)])

    order = np.lexsort((alpha, tau))
    return GreekParameters(xi, omega, alpha[order], tau[order])


def greekmat2bmat(greekmat: GreekMatrix) -> BMatrix:
    """Convert every item of a Greek matrix to b form."""
    rows = []
    for i in range(greekmat.n_items):
        pars = greekmat.parameters(i)
        rows.append(greek2b(pars.xi, pars.omega, pars.alpha, pars.tau))
    return BMatrix.from_rows(rows, greekmat.k, greekmat.ncat)


def bmat2greekmat(bmat: BMatrix) -> GreekMatrix:
    """Convert every item of a b matrix to Greek form.

    Raises
    ------
    NotInvertibleError
        If any item has no valid Greek representation; the message names
        the item.
    """
    parameters = []
    for i in range(bmat.n_items):
        try:
            parameters.append(
                b2greek(bmat.row(i), ncat=int(bmat.ncat[i]), k=int(bmat.k[i]))
            )
        except NotInvertibleError as exc:
            raise NotInvertibleError(f"item {i}: {exc}") from exc
    return GreekMatrix.from_parameters(parameters)
