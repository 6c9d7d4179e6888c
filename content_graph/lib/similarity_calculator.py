"""
Cosine similarity helpers.

Used by the in-memory graph store's neighbour search. pgvector's ``<=>``
operator returns cosine distance, i.e. ``1 - similarity``; callers convert
with the same convention so both stores agree on numbers.
"""

from typing import Sequence, Union

import numpy as np

VectorLike = Union[np.ndarray, Sequence[float]]


def batch_cosine_similarity(query_vec: VectorLike, vectors: VectorLike) -> np.ndarray:
    """
    Cosine similarity between one query and each row of a matrix.

    Rows with zero norm get NaN instead of raising, so a single bad stored
    vector does not poison a whole neighbour search.

    Raises:
        ValueError: If the query is not 1D, the matrix is not 2D, or dimensions differ
    """
    query = np.asarray(query_vec, dtype=float)
    matrix = np.asarray(vectors, dtype=float)

    if query.ndim != 1:
        raise ValueError(f"Query vector must be 1D, got shape: {query.shape}")
    if matrix.ndim != 2:
        raise ValueError(f"Vectors must be 2D array, got shape: {matrix.shape}")
    if query.shape[0] != matrix.shape[1]:
        raise ValueError(
            f"Dimension mismatch: query {query.shape[0]}, vectors {matrix.shape[1]}"
        )

    query_norm = np.linalg.norm(query)
    if query_norm == 0:
        raise ValueError("Cannot calculate similarity for zero vector")

    row_norms = np.linalg.norm(matrix, axis=1)
    with np.errstate(divide="ignore", invalid="ignore"):
        sims = (matrix @ query) / (row_norms * query_norm)
    sims[row_norms == 0] = np.nan
    return sims
