""" Model class bundling a tree of parts and the filters of their mixtures,
    with conversion from and to JSON files.
"""
import json
import numpy as np

from parts import Part, PartTree

class Model:
    def __init__(self, tree, filters=None):
        """ Initializes a model.

        Arguments:
            tree       PartTree describing the structure of the model.
            filters    filters[p][m] is the n by m by f linear filter of
                       mixture m of part p. May be None for models only
                       used on precomputed responses.
        """
        if filters is not None:
            if len(filters) != tree.nparts():
                raise ValueError("Expected filters for " + repr(tree.nparts())
                                 + " parts, got " + repr(len(filters)))
            filters = [[np.asarray(f, dtype=np.float64) for f in partfilters]
                       for partfilters in filters]
        self.tree = tree
        self.filters = filters

    def __repr__(self):
        return "%s(%r)" % (self.__class__, self.__dict__)

def _field(description, key, pos):
    if key not in description:
        raise ValueError("Part " + repr(pos) + " is missing field "
                         + repr(key))
    return description[key]

def model_from_dict(description):
    """ Builds a model from a JSON compatible dictionary of the form
        {"parts": [{"name": ..., "parent": ..., "anchor": [x, y],
                    "deforms": [[ax, bx, ay, by], ...],
                    "bias": [[...], ...], "filters": [...]}, ...]}
        where parts are listed by position, the root having a null parent.
        Names, biases and filters are optional, filters being present
        either for all parts or for none.
    """
    if not isinstance(description, dict) or "parts" not in description:
        raise ValueError("Model description should be a dictionary with a"
                         + " 'parts' list.")
    if not isinstance(description["parts"], list):
        raise ValueError("Model 'parts' should be a list, got "
                         + repr(type(description["parts"]).__name__))
    parts = []
    filters = []

    for pos, partdesc in enumerate(description["parts"]):
        try:
            parts.append(Part(
                pos,
                partdesc.get("parent"),
                _field(partdesc, "anchor", pos),
                _field(partdesc, "deforms", pos),
                bias=partdesc.get("bias"),
                name=partdesc.get("name")
            ))
        except (TypeError, AttributeError) as e:
            raise ValueError("Malformed description for part " + repr(pos)
                             + ": " + str(e))
        filters.append(partdesc.get("filters"))
    nbfilters = sum(1 for f in filters if f is not None)
    if nbfilters not in (0, len(filters)):
        raise ValueError("Filters should be given for all parts or none.")

    return Model(PartTree(parts), filters if nbfilters > 0 else None)

def model_to_dict(model):
    """ Converts a model to a JSON compatible dictionary, the inverse of
        model_from_dict.
    """
    partdescs = []

    for part in model.tree.parts:
        partdesc = {
            "name": part.name,
            "parent": part.parent,
            "anchor": list(part.anchor),
            "deforms": [d.tolist() for d in part.deforms],
            "bias": part.bias.tolist()
        }
        if model.filters is not None:
            partdesc["filters"] = [f.tolist() for f in model.filters[part.pos]]
        partdescs.append(partdesc)
    return {"parts": partdescs}

def load_model(modelfile):
    with open(modelfile) as fileobj:
        description = json.load(fileobj)
    return model_from_dict(description)

def save_model(modelfile, model):
    with open(modelfile, 'w') as fileobj:
        json.dump(model_to_dict(model), fileobj)
