""" Unit tests for model conversions.
"""
import unittest
import os
import shutil
import tempfile
import numpy as np

import model
import testdata

class TestModel(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def assertModelsEqual(self, m1, m2):
        self.assertEqual(m1.tree.nparts(), m2.tree.nparts())
        for p1, p2 in zip(m1.tree.parts, m2.tree.parts):
            self.assertEqual(p1.parent, p2.parent)
            self.assertEqual(p1.children, p2.children)
            self.assertEqual(p1.anchor, p2.anchor)
            self.assertEqual(p1.name, p2.name)
            np.testing.assert_array_equal(p1.bias, p2.bias)
            for d1, d2 in zip(p1.deforms, p2.deforms):
                np.testing.assert_array_equal(d1, d2)
        if m1.filters is None:
            self.assertIsNone(m2.filters)
        else:
            for f1, f2 in zip(m1.filters, m2.filters):
                for l1, l2 in zip(f1, f2):
                    np.testing.assert_array_equal(l1, l2)

    def test_from_dict(self):
        description = {"parts": [
            {"name": "torso", "parent": None, "anchor": [0, 0],
             "deforms": [[1, 0, 1, 0]]},
            {"name": "head", "parent": 0, "anchor": [0, -3],
             "deforms": [[0.5, 0.1, 0.5, 0.1]], "bias": [[0.2]]}
        ]}
        mdl = model.model_from_dict(description)
        self.assertIsNone(mdl.filters)
        self.assertEqual(mdl.tree.root().name, "torso")
        self.assertEqual(mdl.tree[0].children, [1])
        self.assertEqual(mdl.tree[1].anchor, (0, -3))
        self.assertEqual(mdl.tree[1].bias[0,0], 0.2)
        self.assertEqual(mdl.tree[0].bias[0,0], 0)

    def test_save_load(self):
        for i in range(10):
            tree = testdata.randomtree(np.random.randint(1, 6), 2)
            filters = [[np.random.rand(3, 2, 4) for m in range(2)]
                       for p in range(tree.nparts())]
            mdl = model.Model(tree, filters if i % 2 == 0 else None)
            modelfile = os.path.join(self.tmpdir, 'model.json')
            model.save_model(modelfile, mdl)
            self.assertModelsEqual(mdl, model.load_model(modelfile))

    def test_malformed(self):
        with self.assertRaises(ValueError):
            model.model_from_dict([])
        with self.assertRaises(ValueError):
            model.model_from_dict({"parts": 5})
        with self.assertRaises(ValueError):
            model.model_from_dict({"parts": [{"parent": None,
                                              "deforms": [[1, 0, 1, 0]]}]})
        with self.assertRaises(ValueError):
            model.model_from_dict({"parts": [
                {"parent": None, "anchor": [0, 0], "deforms": [[1, 0, 1, 0]],
                 "filters": [[[0.]]]},
                {"parent": 0, "anchor": [0, 0], "deforms": [[1, 0, 1, 0]]}
            ]})
        with self.assertRaises(ValueError):
            model.Model(testdata.randomtree(2, 1), [[np.zeros([1, 1])]])

if __name__ == "__main__":
    unittest.main()
