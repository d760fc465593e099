""" Dynamic programming over a tree of parts: passes distance transformed
    scores from the leaves to the root, then walks back down the tree to
    recover the best placement of every part.

    Scores are maximized, the cost of a configuration being its negated
    score, hence the min/argmin naming of the driver.
"""
import logging
import multiprocessing as mp
import numpy as np
from scipy.ndimage import label, maximum_filter

from gdt import gdt2D
from reduction import pick_by_index, reduce_max

logger = logging.getLogger(__name__)

class PartLocation:
    """ Placement of a single part in a detection.
    """
    def __init__(self, part, mixture, x, y):
        self.part = part
        self.mixture = mixture
        self.x = x
        self.y = y

    def __eq__(self, other):
        return (isinstance(other, PartLocation)
                and self.__dict__ == other.__dict__)

    def __repr__(self):
        return "%s(%r)" % (self.__class__, self.__dict__)

class Candidate:
    """ One detected instance of the model: a location and mixture for
        every part, at a given scale of the pyramid.
    """
    def __init__(self, parts, scale, score):
        """ Initializes a detection candidate.

        Arguments:
            parts    list of PartLocation, indexed by part position.
            scale    index of the pyramid scale the parts were found at.
            score    total score of the configuration.
        """
        self.parts = parts
        self.scale = scale
        self.score = score

    def cost(self):
        return -self.score

    def __repr__(self):
        return "%s(%r)" % (self.__class__, self.__dict__)

def shift_anchor(score, Ix, Iy, anchor):
    """ Moves a child score map and its argmax maps to the parent's frame,
        out[y,x] = in[y+anchor_y,x+anchor_x]. Cells falling outside of the
        input get a score of -inf and index 0.
    """
    ancx, ancy = anchor
    rows, cols = score.shape
    shifted = np.full([rows, cols], -np.inf)
    shiftedIx = np.zeros([rows, cols], dtype=np.intp)
    shiftedIy = np.zeros([rows, cols], dtype=np.intp)
    # Destination window of the overlap.
    x0, x1 = max(-ancx, 0), min(cols - ancx, cols)
    y0, y1 = max(-ancy, 0), min(rows - ancy, rows)

    if x0 < x1 and y0 < y1:
        src = (slice(y0 + ancy, y1 + ancy), slice(x0 + ancx, x1 + ancx))
        shifted[y0:y1,x0:x1] = score[src]
        shiftedIx[y0:y1,x0:x1] = Ix[src]
        shiftedIy[y0:y1,x0:x1] = Iy[src]

    return (shifted, shiftedIx, shiftedIy)

def pass_message(part, scores):
    """ Computes the messages sent by a part to its parent.

    Arguments:
        part      the Part sending the messages.
        scores    list of nmixtures score maps of the part, including the
                  messages from its own children.
    Returns:
        (messages, backtrack) where messages[m] is the best score of the
        subtree rooted at part for each location of the parent in mixture
        m, and backtrack[m] the (Ix, Iy, Ik) maps giving the column, row
        and mixture of the part achieving it.
    """
    nmixtures = part.nmixtures()
    shifted = []
    shiftedIx = []
    shiftedIy = []

    for m in range(nmixtures):
        df, Ix, Iy = gdt2D(part.deforms[m], scores[m])
        score, Ixm, Iym = shift_anchor(df, Ix, Iy, part.anchor)
        shifted.append(score)
        shiftedIx.append(Ixm)
        shiftedIy.append(Iym)

    messages = []
    backtrack = []
    for m in range(nmixtures):
        weighted = [shifted[mm] + part.bias[m,mm] for mm in range(nmixtures)]
        maxval, Ik = reduce_max(weighted)
        messages.append(maxval)
        backtrack.append((pick_by_index(shiftedIx, Ik),
                          pick_by_index(shiftedIy, Ik),
                          Ik))

    return (messages, backtrack)

def sweep_scale(tree, responses):
    """ Passes messages from the leaves to the root at a single scale.

    Arguments:
        tree         PartTree to match.
        responses    list of nparts * nmixtures response maps of the scale,
                     response of mixture m of part p at p * nmixtures + m.
                     Left untouched.
    Returns:
        (rootscores, backtrack) where rootscores is the list of nmixtures
        total score maps of the root, and backtrack maps (part, parent
        mixture) to the argmax maps returned by pass_message.
    """
    nmixtures = tree.nmixtures()
    messages = {}
    backtrack = {}
    rootscores = None

    for pos in tree.postorder():
        part = tree[pos]
        scores = []
        for m in range(nmixtures):
            score = np.array(responses[nmixtures * pos + m], dtype=np.float64)
            for child in part.children:
                score += messages[(child, m)]
            scores.append(score)
        if part.parent is None:
            rootscores = scores
            continue
        logger.debug("passing message from part %s to part %s",
                     part.name, tree[part.parent].name)
        partmessages, partbacktrack = pass_message(part, scores)
        for m in range(nmixtures):
            messages[(pos, m)] = partmessages[m]
            backtrack[(pos, m)] = partbacktrack[m]
        # The messages of the children are folded into scores now.
        for child in part.children:
            for m in range(nmixtures):
                del messages[(child, m)]

    return (rootscores, backtrack)

def _sweep_scale_helper(arguments):
    tree, responses = arguments
    return sweep_scale(tree, responses)

class DynamicProgram:
    def __init__(self, nb_cores=None):
        """ Initializes the dynamic program.

        Arguments:
            nb_cores    number of processes to sweep scales in parallel
                        with. None or 1 sweeps them in the calling process.
        """
        self.nb_cores = nb_cores
        self.tree = None
        self.rootscores = None
        self.backtrack = None

    def min(self, tree, responses, nscales):
        """ Passes messages from the leaves to the root of the tree at every
            scale, keeping what is needed to backtrack afterwards.

        Arguments:
            tree         PartTree to match.
            responses    flat sequence of nparts * nmixtures * nscales
                         response maps, the map of mixture m of part p at
                         scale s being at tree.response_index(s, p, m).
                         Maps of one scale share the same shape.
            nscales      number of scales in the pyramid.
        Returns:
            list of nscales lists of nmixtures total score maps of the root.
        """
        nparts = tree.ndescendants() + 1
        nmixtures = tree.nmixtures()
        expected = nparts * nmixtures * nscales
        if len(responses) != expected:
            raise ValueError("Expected " + repr(expected) + " response maps"
                             + " for " + repr(nparts) + " parts, "
                             + repr(nmixtures) + " mixtures and "
                             + repr(nscales) + " scales, got "
                             + repr(len(responses)))
        scaleresponses = []

        for scale in range(nscales):
            start = tree.response_index(scale, 0, 0)
            planes = [np.asarray(r, dtype=np.float64)
                      for r in responses[start:start + nparts * nmixtures]]
            shape = planes[0].shape
            for k, plane in enumerate(planes):
                if plane.ndim != 2 or plane.shape != shape:
                    raise ValueError("Response map " + repr(start + k)
                                     + " has shape " + repr(plane.shape)
                                     + ", expected " + repr(shape)
                                     + " at scale " + repr(scale))
                if np.isnan(plane).any() or np.isposinf(plane).any():
                    raise ValueError("Response map " + repr(start + k)
                                     + " holds NaN or +inf values.")
            scaleresponses.append(planes)

        if self.nb_cores is not None and self.nb_cores > 1 and nscales > 1:
            pool = mp.Pool(processes=min(self.nb_cores, nscales))
            try:
                results = pool.map(_sweep_scale_helper,
                                   [(tree, planes) for planes in scaleresponses])
            finally:
                pool.close()
                pool.join()
        else:
            results = [sweep_scale(tree, planes) for planes in scaleresponses]
        logger.info("swept %d scales of %d parts with %d mixtures",
                    nscales, nparts, nmixtures)

        self.tree = tree
        self.rootscores = [r[0] for r in results]
        self.backtrack = [r[1] for r in results]

        return self.rootscores

    def argmin(self, threshold=-np.inf, limit=None):
        """ Walks back down the tree from the local optima of the root
            scores, returning a candidate for each of them. A flat optimum
            spanning several connected cells yields a single candidate,
            rooted at its first cell in row major order.

        Arguments:
            threshold    minimum total score of returned candidates.
            limit        maximum number of candidates to return, all of
                         them if None.
        Returns:
            list of Candidate, best score first. Ties are ordered by scale,
            then row, then column of the root.
        """
        if self.rootscores is None:
            raise RuntimeError("argmin requires a call to min first.")
        optima = []

        for scale, scores in enumerate(self.rootscores):
            best, mixture = reduce_max(scores)
            if best.size == 0:
                continue
            neighbourhood = maximum_filter(best, size=3, mode='constant',
                                           cval=-np.inf)
            peaks = ((best == neighbourhood) & np.isfinite(best)
                     & (best >= threshold))
            # Neighbouring peaks share their value, keep one per plateau.
            plateaus, nbplateaus = label(peaks, structure=np.ones([3, 3]))
            labels, firsts = np.unique(plateaus.ravel(), return_index=True)
            ys, xs = np.unravel_index(firsts[labels > 0], best.shape)
            for y, x in zip(ys, xs):
                optima.append((-best[y,x], scale, int(y), int(x),
                               int(mixture[y,x])))
        optima.sort()
        if limit is not None:
            optima = optima[:limit]

        return [self._backtrack(scale, x, y, m, -negscore)
                for negscore, scale, y, x, m in optima]

    def _backtrack(self, scale, x, y, mixture, score):
        """ Recovers the placement of every part given the placement of the
            root.
        """
        backtrack = self.backtrack[scale]
        locations = [None] * self.tree.nparts()
        locations[self.tree.rootpos] = PartLocation(self.tree.rootpos,
                                                    mixture, x, y)

        for pos in self.tree.preorder():
            parent = locations[pos]
            for child in self.tree[pos].children:
                Ix, Iy, Ik = backtrack[(child, parent.mixture)]
                locations[child] = PartLocation(
                    child,
                    int(Ik[parent.y,parent.x]),
                    int(Ix[parent.y,parent.x]),
                    int(Iy[parent.y,parent.x])
                )

        return Candidate(locations, scale, float(score))
