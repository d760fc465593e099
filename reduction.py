""" Reductions over stacks of equally shaped 2D planes.
"""
import numpy as np

def _stack(planes):
    """ Stacks a sequence of 2D planes into a K by rows by cols array,
        checking that they all share the same shape.
    """
    planes = [np.asarray(p) for p in planes]
    if len(planes) == 0:
        raise ValueError("Cannot reduce an empty stack of planes.")
    shape = planes[0].shape
    if len(shape) != 2:
        raise ValueError("Planes should be 2 dimensional, got shape "
                         + repr(shape))
    for k, plane in enumerate(planes):
        if plane.shape != shape:
            raise ValueError("Plane " + repr(k) + " has shape "
                             + repr(plane.shape) + ", expected "
                             + repr(shape))
    return np.stack(planes)

def pick_by_index(planes, idx):
    """ Reduces a stack of planes to a single plane by picking, for each
        cell, the value of the plane designated by an index map.

        out[i,j] == planes[idx[i,j]][i,j] for all i,j.

    Arguments:
        planes    sequence of K rows by cols arrays.
        idx       rows by cols integer array with values in [0;K).
    Returns:
        rows by cols array with the dtype of the planes.
    """
    stack = _stack(planes)
    idx = np.asarray(idx)
    if idx.shape != stack.shape[1:]:
        raise ValueError("Index plane has shape " + repr(idx.shape)
                         + ", planes have shape " + repr(stack.shape[1:]))
    if not np.issubdtype(idx.dtype, np.integer):
        raise ValueError("Index plane should hold integers, got "
                         + repr(idx.dtype))
    nb_planes = stack.shape[0]
    if idx.size > 0 and (idx.min() < 0 or idx.max() >= nb_planes):
        raise IndexError("Index plane values should be in [0;"
                         + repr(nb_planes) + "), got range ["
                         + repr(int(idx.min())) + ";"
                         + repr(int(idx.max())) + "]")

    return np.take_along_axis(stack, idx[np.newaxis].astype(np.intp),
                              axis=0)[0]

def reduce_max(planes):
    """ Elementwise maximum over a stack of planes, recording which plane
        each maximum came from.

        Ties are resolved in favor of the earliest plane: plane 0 holds
        the cell until a later plane is strictly greater.

    Arguments:
        planes    sequence of K >= 1 rows by cols arrays.
    Returns:
        (maxval, maxidx) where maxval is the rows by cols maximum and
        maxidx the rows by cols integer array of winning plane indices.
    """
    stack = _stack(planes)
    # argmax returns the first occurrence of the maximum.
    maxidx = np.argmax(stack, axis=0)
    maxval = np.take_along_axis(stack, maxidx[np.newaxis], axis=0)[0]

    return (maxval, maxidx)
