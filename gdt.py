""" Generalized distance transforms of sampled functions under quadratic
    distances, after P. Felzenszwalb and D. Huttenlocher, "Distance
    Transforms of Sampled Functions", Cornell Technical Report, 2004.
"""
import numpy as np

def _intersection(src, q, p, a, b):
    """ Abscissa where the parabola rooted at q starts lying below the one
        rooted at p, for p < q.
    """
    return (((src[q] - src[p]) - b * (q - p) + a * (q * q - p * p))
            / (2 * a * (q - p)))

def gdt1D(src, a, b):
    """ 1D generalized distance transform, in min form.

        dst[q] = min_p a*(q-p)^2 + b*(q-p) + src[p]

    Arguments:
        src    n dimensional array of sampled function values. +inf marks
               positions which should never be chosen.
        a      nonnegative quadratic coefficient. A negative coefficient
               has no lower envelope, callers maximizing a score should
               negate the score rather than the coefficients.
        b      linear coefficient.
    Returns:
        (dst, arg) where dst is the transformed function and arg the
        integer array of minimizing positions p.
    """
    src = np.asarray(src, dtype=np.float64)
    if src.ndim != 1:
        raise ValueError("gdt1D expects a 1 dimensional array, got shape "
                         + repr(src.shape))
    if a < 0:
        raise ValueError("Quadratic coefficient should be nonnegative, got "
                         + repr(a))
    n = src.size
    dst = np.empty(n, dtype=np.float64)
    arg = np.empty(n, dtype=np.intp)
    if n == 0:
        return (dst, arg)
    if np.isnan(src).any() or np.isneginf(src).any():
        raise ValueError("Source values should be finite or +inf.")
    positions = np.arange(n)
    candidates = np.flatnonzero(np.isfinite(src))
    if candidates.size == 0:
        dst[:] = np.inf
        arg[:] = positions
        return (dst, arg)

    if a == 0:
        # Linear cost: the minimum over p of src[p] - b*p is shared by
        # every q, only ties are broken in favor of p = q.
        g = src - b * positions
        best = np.argmin(g)
        dst[:] = g[best] + b * positions
        arg[:] = np.where(g == g[best], positions, best)
        return (dst, arg)

    # Lower envelope of the parabolas rooted at finite positions. v holds
    # the roots of the envelope, z[k] is where v[k] starts being minimal.
    v = np.empty(n, dtype=np.intp)
    z = np.empty(n + 1, dtype=np.float64)
    k = 0
    v[0] = candidates[0]
    z[0] = -np.inf
    z[1] = np.inf
    for q in candidates[1:]:
        s = _intersection(src, q, v[k], a, b)
        # z[0] is -inf, but an overflowing intersection can be -inf too.
        while k > 0 and s <= z[k]:
            k -= 1
            s = _intersection(src, q, v[k], a, b)
        k += 1
        v[k] = q
        z[k] = s
        z[k+1] = np.inf

    k = 0
    for q in range(n):
        while z[k+1] < q:
            k += 1
        p = v[k]
        dst[q] = a * (q - p)**2 + b * (q - p) + src[p]
        arg[q] = p

    return (dst, arg)

def gdt2D(deform, score):
    """ 2D generalized distance transform of a score map, in max form.

        out[y,x] = max_{py,px} score[py,px] - (ax*dx^2 + bx*dx + ay*dy^2 + by*dy)

    where dx = x - px and dy = y - py. The score is negated and handed to
    the min form 1D transform, first along the rows with (ax, bx), then
    down the columns with (ay, by), and the result negated back. This is
    the max form sweep with (-a, -b) on the raw score.

    Arguments:
        deform    4 dimensional vector (ax, bx, ay, by) of deformation
                  cost coefficients, ax and ay nonnegative.
        score     rows by cols score map. -inf marks infeasible cells.
    Returns:
        (out, Ix, Iy) where out is the transformed score map, and Ix, Iy
        are rows by cols integer arrays holding the column and row of the
        source cell chosen for each output cell.
    """
    deform = np.asarray(deform, dtype=np.float64).ravel()
    if deform.size != 4:
        raise ValueError("Deformation should have 4 coefficients, got "
                         + repr(deform.size))
    ax, bx, ay, by = deform
    score = np.asarray(score, dtype=np.float64)
    if score.ndim != 2:
        raise ValueError("gdt2D expects a 2 dimensional score, got shape "
                         + repr(score.shape))
    rows, cols = score.shape
    cost = -score

    # Transform across the rows.
    rowdt = np.empty([rows, cols], dtype=np.float64)
    rowarg = np.empty([rows, cols], dtype=np.intp)
    for i in range(rows):
        rowdt[i], rowarg[i] = gdt1D(cost[i], ax, bx)

    # Then down the columns of the intermediate result.
    df = np.empty([rows, cols], dtype=np.float64)
    Iy = np.empty([rows, cols], dtype=np.intp)
    for j, column in enumerate(rowdt.T):
        df[:,j], Iy[:,j] = gdt1D(column, ay, by)

    # The column pass only saw row-transformed values: the source column
    # is the row pass argmin at the source row.
    Ix = rowarg[Iy, np.arange(cols)[np.newaxis,:]]

    return (-df, Ix, Iy)
