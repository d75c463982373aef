"""Result container for FMP model fitting."""

from dataclasses import dataclass

import numpy as np

from flexmet.parameters import BMatrix, GreekMatrix


@dataclass
class FitResult:
    """Container for FMP calibration results.

    Parameters
    ----------
    bmat : BMatrix
        Estimated item parameters in b form.
    greekmat : GreekMatrix
        Estimated item parameters in Greek form.
    log_likelihood : float
        Final marginal log-likelihood.
    n_iterations : int
        Number of EM cycles.
    converged : bool
        Whether the change in log-likelihood fell below tolerance.
    aic : float
        Akaike Information Criterion.
    bic : float
        Bayesian Information Criterion.
    n_observations : int, optional
        Number of persons.
    n_parameters : int, optional
        Number of free item parameters.

    Examples
    --------
    >>> result = fmp(responses, k=1)
    >>> print(result.summary())
    """

    bmat: BMatrix
    greekmat: GreekMatrix
    log_likelihood: float
    n_iterations: int
    converged: bool
    aic: float
    bic: float
    n_observations: int = 0
    n_parameters: int = 0

    def coef(self, parameterization: str = "b") -> dict[str, np.ndarray]:
        """Estimates keyed by column name.

        Parameters
        ----------
        parameterization : {'b', 'greek'}, default='b'

        Returns
        -------
        dict
            Column name to per-item values; NaN marks cells an item lacks.
        """
        if parameterization == "b":
            matrix = self.bmat
        elif parameterization == "greek":
            matrix = self.greekmat
        else:
            raise ValueError(f"Unknown parameterization: {parameterization}")
        return {
            name: np.array(matrix.values[:, j])
            for j, name in enumerate(matrix.column_names)
        }

    def summary(self) -> str:
        """Generate a formatted summary of the results."""
        lines = []
        width = 80

        lines.append("=" * width)
        lines.append(f"{'FMP Model Results':^{width}}")
        lines.append("=" * width)
        lines.append(
            f"No. Items:          {self.bmat.n_items:<20} "
            f"Log-Likelihood:    {self.log_likelihood:>12.4f}"
        )
        lines.append(
            f"Max k:              {self.bmat.maxk:<20} "
            f"AIC:               {self.aic:>12.4f}"
        )
        lines.append(
            f"No. Persons:        {self.n_observations:<20} "
            f"BIC:               {self.bic:>12.4f}"
        )
        lines.append(
            f"Converged:          {str(self.converged):<20} "
            f"Iterations:        {self.n_iterations:>12}"
        )
        lines.append("-" * width)

        names = self.greekmat.column_names
        lines.append(f"{'Item':<8}" + "".join(f"{n:>10}" for n in names))
        for i in range(self.greekmat.n_items):
            cells = []
            for value in self.greekmat.values[i]:
                cells.append(f"{'':>10}" if np.isnan(value) else f"{value:>10.4f}")
            lines.append(f"{i:<8}" + "".join(cells))

        lines.append("=" * width)
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"FitResult(n_items={self.bmat.n_items}, "
            f"log_likelihood={self.log_likelihood:.4f}, "
            f"converged={self.converged})"
        )
