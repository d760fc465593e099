""" Tree of parts for pictorial structures, stored as an arena of nodes
    addressed by their integer position.
"""
import numpy as np

class Part:
    def __init__(self, pos, parent, anchor, deforms, bias=None, name=None):
        """ Initializes a part of the tree.

        Arguments:
            pos       index of the part in the tree, also its position in
                      the linearization of the response maps.
            parent    index of the parent part, None for the root.
            anchor    (x, y) expected offset of the part from its parent,
                      in the parent's coordinate frame.
            deforms   list of nmixtures 4d vectors (ax, bx, ay, by) of
                      deformation coefficients, one per mixture.
            bias      nmixtures by nmixtures matrix, bias[m][mm] being the
                      score of pairing the parent's mixture m with this
                      part's mixture mm. Zero if None.
            name      optional human readable label.
        """
        self.pos = int(pos)
        self.parent = None if parent is None else int(parent)
        self.children = []
        self.anchor = tuple(int(c) for c in anchor)
        self.deforms = [np.asarray(d, dtype=np.float64) for d in deforms]
        nmixtures = len(self.deforms)
        if bias is None:
            bias = np.zeros([nmixtures, nmixtures])
        self.bias = np.asarray(bias, dtype=np.float64)
        self.name = name if name is not None else "part" + repr(self.pos)

    def nmixtures(self):
        return len(self.deforms)

    def isleaf(self):
        return len(self.children) == 0

    def __repr__(self):
        return "%s(%r)" % (self.__class__, self.__dict__)

class PartTree:
    """ Rooted tree of parts. Read only once built, so a single tree can be
        shared by any number of concurrent detections.
    """
    def __init__(self, parts):
        """ Builds the tree from a list of parts, linking children to their
            parents and checking the structure.

        Arguments:
            parts    list of Part objects, parts[i].pos == i.
        """
        if len(parts) == 0:
            raise ValueError("A part tree needs at least one part.")
        self.parts = list(parts)
        nparts = len(self.parts)
        roots = []

        for i, part in enumerate(self.parts):
            if part.pos != i:
                raise ValueError("Part " + repr(part.name) + " has position "
                                 + repr(part.pos) + " but is stored at "
                                 + repr(i))
            part.children = []
        for part in self.parts:
            if part.parent is None:
                roots.append(part.pos)
            elif not 0 <= part.parent < nparts:
                raise ValueError("Part " + repr(part.name) + " has parent "
                                 + repr(part.parent) + ", out of range.")
            elif part.parent == part.pos:
                raise ValueError("Part " + repr(part.name)
                                 + " is its own parent.")
            else:
                self.parts[part.parent].children.append(part.pos)
        if len(roots) != 1:
            raise ValueError("A part tree needs exactly one root, got "
                             + repr(len(roots)))
        self.rootpos = roots[0]
        # Each part has a single parent link, so parts unreachable from the
        # root are exactly those caught in a cycle.
        reached = self.preorder()
        if len(reached) != nparts:
            unreached = sorted(set(range(nparts)) - set(reached))
            raise ValueError("Parts " + repr(unreached)
                             + " are not connected to the root.")
        self._checkmixtures()

    def _checkmixtures(self):
        nmixtures = self.parts[0].nmixtures()
        if nmixtures == 0:
            raise ValueError("Parts need at least one mixture.")
        for part in self.parts:
            if len(part.anchor) != 2:
                raise ValueError("Part " + repr(part.name) + " has anchor "
                                 + repr(part.anchor) + ", expected (x, y)")
            if part.nmixtures() != nmixtures:
                raise ValueError("Part " + repr(part.name) + " has "
                                 + repr(part.nmixtures())
                                 + " mixtures, expected " + repr(nmixtures))
            for deform in part.deforms:
                if deform.shape != (4,):
                    raise ValueError("Part " + repr(part.name)
                                     + " has deformation of shape "
                                     + repr(deform.shape)
                                     + ", expected (4,)")
                if deform[0] < 0 or deform[2] < 0:
                    raise ValueError("Part " + repr(part.name)
                                     + " has negative quadratic"
                                     + " deformation coefficients.")
            if part.bias.shape != (nmixtures, nmixtures):
                raise ValueError("Part " + repr(part.name) + " has bias of"
                                 + " shape " + repr(part.bias.shape)
                                 + ", expected "
                                 + repr((nmixtures, nmixtures)))

    def root(self):
        return self.parts[self.rootpos]

    def __getitem__(self, pos):
        return self.parts[pos]

    def __len__(self):
        return len(self.parts)

    def nparts(self):
        return len(self.parts)

    def nmixtures(self):
        return self.root().nmixtures()

    def ndescendants(self, pos=None):
        """ Number of parts in the subtree rooted at pos, minus one.
        """
        if pos is None:
            pos = self.rootpos
        return len(self.preorder(pos)) - 1

    def preorder(self, pos=None):
        """ Part positions of a subtree, parents before their children.
        """
        if pos is None:
            pos = self.rootpos
        order = []
        stack = [pos]

        while len(stack) > 0:
            current = stack.pop()
            order.append(current)
            stack.extend(reversed(self.parts[current].children))
        return order

    def postorder(self, pos=None):
        """ Part positions of a subtree, children before their parents.
        """
        order = []

        def _visit(current):
            for child in self.parts[current].children:
                _visit(child)
            order.append(current)
        _visit(self.rootpos if pos is None else pos)
        return order

    def response_index(self, scale, pos, mixture):
        """ Index of the response map of a part mixture at a given scale,
            in the flat scale-major, then part, then mixture order.
        """
        nmixtures = self.nmixtures()
        return (self.nparts() * nmixtures * scale + nmixtures * pos
                + mixture)

    def __repr__(self):
        return "%s(%r)" % (self.__class__, self.parts)
