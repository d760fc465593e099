import numpy as np
import numpy.random as npr

from parts import Part, PartTree

def randomtree(nbparts, nmixtures, maxanchor=2):
    """ Generate a random tree of parts, each part being attached to a
        random earlier part.
    """
    parts = []

    for pos in range(nbparts):
        parent = None if pos == 0 else npr.randint(0, pos)
        anchor = npr.randint(-maxanchor, maxanchor + 1, size=2)
        # nonnegative quadratic terms, any sign for the linear ones
        deforms = [np.array([npr.rand() + 0.1, npr.randn() * 0.2,
                             npr.rand() + 0.1, npr.randn() * 0.2])
                   for m in range(nmixtures)]
        bias = npr.randn(nmixtures, nmixtures)
        parts.append(Part(pos, parent, anchor, deforms, bias))
    return PartTree(parts)

def chaintree(nbparts, deform=(1, 0, 1, 0), anchor=(0, 0)):
    """ Single mixture chain of parts, part i being the parent of part i+1.
    """
    parts = [Part(pos, None if pos == 0 else pos - 1, anchor, [deform])
             for pos in range(nbparts)]
    return PartTree(parts)

def randomresponses(tree, shapes):
    """ Generate random response maps for a tree, one shape per scale.
    """
    responses = []

    for rows, cols in shapes:
        for pos in range(tree.nparts()):
            for m in range(tree.nmixtures()):
                responses.append(npr.randn(rows, cols))
    return responses
