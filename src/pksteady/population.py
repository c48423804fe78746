# src/pksteady/population.py
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Mapping, Sequence

import numpy as np

from .events import steady_state
from .types import DosingRegime

logger = logging.getLogger(__name__)


def steady_state_multi(f, regimen: DosingRegime | Mapping[str, DosingRegime],
                       params_by_subject: Mapping[str, Sequence[float]], n_states: int, *,
                       max_workers: int | None = None, **kwargs
                       ) -> tuple[dict[str, np.ndarray], dict[str, Exception]]:
    """
    Steady states for many subjects, each solved independently.

    Parameters
    ----------
    f : callable
        Model right-hand side shared by all subjects.
    regimen : DosingRegime or dict[str, DosingRegime]
        One regimen for everybody, or one per subject id.
    params_by_subject : dict[str, sequence of float]
        Mapping from subject id to that subject's model parameters.
    n_states : int
        Number of model states.
    max_workers : int, optional
        Solve on a thread pool of this size. Default: one after the other.
    **kwargs
        Passed on to `steady_state` (covariates, solver_config, ...).

    Returns
    -------
    (results, failures)
        results maps subject id to its steady state (numpy array); failures
        maps subject id to the exception its solve raised. A failed subject
        does not stop the others.
    """
    def solve_one(subject_id: str):
        if isinstance(regimen, Mapping):
            reg = regimen.get(subject_id)
            if reg is None:
                raise KeyError(f"Missing regimen for subject '{subject_id}'.")
        else:
            reg = regimen
        return np.asarray(steady_state(f, reg, params_by_subject[subject_id], n_states, **kwargs))

    subject_ids = list(params_by_subject)
    results: dict[str, np.ndarray] = {}
    failures: dict[str, Exception] = {}

    def record(subject_id: str, outcome) -> None:
        try:
            results[subject_id] = outcome()
        except Exception as exc:
            logger.warning("steady state failed for subject %s: %s", subject_id, exc)
            failures[subject_id] = exc

    if max_workers and max_workers > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            futures = {sid: pool.submit(solve_one, sid) for sid in subject_ids}
            for sid, fut in futures.items():
                record(sid, fut.result)
    else:
        for sid in subject_ids:
            record(sid, lambda sid=sid: solve_one(sid))

    return results, failures
