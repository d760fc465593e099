""" Parts based detector: matches a tree of part filters against a feature
    pyramid and returns the best configurations of parts.
"""
import logging
import sys
import numpy as np

from dynprog import DynamicProgram
from matching import compute_responses
import model as mdl

logger = logging.getLogger(__name__)

class PartsBasedDetector:
    def __init__(self, model, nb_cores=None):
        """ Initializes the detector.

        Arguments:
            model       Model holding the part tree and its filters.
            nb_cores    number of processes the scales are swept with.
        """
        if model.filters is None:
            raise ValueError("The detector needs a model with filters.")
        self.model = model
        self.nb_cores = nb_cores

    def detect(self, pyramid, threshold=-np.inf, limit=None):
        """ Detects instances of the model in a feature pyramid.

        Arguments:
            pyramid      list of n_s by m_s by f feature maps, one per
                         scale, computed by the caller.
            threshold    minimum score of returned candidates.
            limit        maximum number of candidates, None for all the
                         local optima of the root scores.
        Returns:
            list of Candidate, best first. Locations are in feature map
            cells of the candidate's scale.
        """
        responses = compute_responses(pyramid, self.model.tree,
                                      self.model.filters)
        dp = DynamicProgram(nb_cores=self.nb_cores)
        dp.min(self.model.tree, responses, len(pyramid))
        candidates = dp.argmin(threshold=threshold, limit=limit)
        logger.info("%d candidates over %d scales", len(candidates),
                    len(pyramid))

        return candidates

def load_pyramid(pyramidfile):
    """ Loads a feature pyramid saved with numpy.savez, levels being taken
        in the order they were saved in.
    """
    with np.load(pyramidfile) as archive:
        return [archive[key] for key in archive.files]

if __name__ == "__main__":
    if len(sys.argv) < 3:
        raise ValueError("Please input a model file and a feature pyramid"
                         + " file, optionally followed by a threshold.")
    logging.basicConfig(level=logging.INFO)
    threshold = float(sys.argv[3]) if len(sys.argv) > 3 else -np.inf
    detector = PartsBasedDetector(mdl.load_model(sys.argv[1]))
    for candidate in detector.detect(load_pyramid(sys.argv[2]),
                                     threshold=threshold):
        print("scale " + repr(candidate.scale) + ", score "
              + repr(candidate.score))
        for location in candidate.parts:
            print("    part " + repr(location.part) + ", mixture "
                  + repr(location.mixture) + " at ("
                  + repr(location.x) + ", " + repr(location.y) + ")")
