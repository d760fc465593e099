""" Matching functions for linear filters on feature maps.
"""
import numpy as np
import cv2

def match_filter(fmap, linfilter):
    """ Returns the response map of a linear filter on a feature map.

    Arguments:
        fmap         n by m by f 3 dimensional numpy array, or n by m for
                     a single feature.
        linfilter    n' by m' by f 3 dimensional numpy array, or n' by m'.
    Returns:
        n by m 2 dimensional numpy array, where each pixel corresponds
        to the response of the filter when its center (at row n'/2 and
        column m'/2, rounded down) is positioned on this pixel. The
        feature map is zero outside of its bounds.
    """
    fmap = np.asarray(fmap, dtype=np.float64)
    linfilter = np.asarray(linfilter, dtype=np.float64)
    if fmap.ndim == 2:
        fmap = fmap[:,:,np.newaxis]
    if linfilter.ndim == 2:
        linfilter = linfilter[:,:,np.newaxis]
    f_rows, f_cols, f_dim = fmap.shape
    l_rows, l_cols, l_dim = linfilter.shape
    if f_dim != l_dim:
        raise ValueError("Feature map has dimension " + repr(f_dim)
                         + " but filter has dimension " + repr(l_dim))
    response = np.zeros([f_rows, f_cols], dtype=np.float64)
    if f_rows == 0 or f_cols == 0:
        return response

    # Pad explicitly so the filter never exceeds the map, OpenCV's filter2D
    # computes the cross correlation around the kernel center.
    for i in range(f_dim):
        padded = cv2.copyMakeBorder(
            np.ascontiguousarray(fmap[:,:,i]),
            l_rows, l_rows, l_cols, l_cols,
            cv2.BORDER_CONSTANT,
            value=0
        )
        filtered = cv2.filter2D(
            padded,
            -1,
            np.ascontiguousarray(linfilter[:,:,i]),
            borderType=cv2.BORDER_CONSTANT
        )
        response += filtered[l_rows:l_rows+f_rows,l_cols:l_cols+f_cols]

    return response

def compute_responses(pyramid, tree, filters):
    """ Matches every part mixture filter on every scale of a feature
        pyramid.

    Arguments:
        pyramid    list of feature maps, one per scale.
        tree       PartTree of the model.
        filters    filters[p][m] is the filter of mixture m of part p.
    Returns:
        flat list of response maps, the response of mixture m of part p
        at scale s being at tree.response_index(s, p, m).
    """
    nmixtures = tree.nmixtures()
    if len(filters) != tree.nparts():
        raise ValueError("Expected filters for " + repr(tree.nparts())
                         + " parts, got " + repr(len(filters)))
    for pos, partfilters in enumerate(filters):
        if len(partfilters) != nmixtures:
            raise ValueError("Part " + repr(pos) + " has "
                             + repr(len(partfilters)) + " filters, expected "
                             + repr(nmixtures))
    responses = []

    for fmap in pyramid:
        for pos in range(tree.nparts()):
            for m in range(nmixtures):
                responses.append(match_filter(fmap, filters[pos][m]))

    return responses
