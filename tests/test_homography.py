"""
Tests for the linear solver and homography estimation.
"""

import pytest
import numpy as np
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))


class TestLinearSolver:
    """Test Gaussian elimination with partial pivoting."""

    def test_requires_pivoting(self):
        """A zero on the diagonal must be handled by a row swap."""
        from docscan.utils.linalg import solve_linear_system

        x = solve_linear_system([[0.0, 2.0], [1.0, 1.0]], [2.0, 3.0])

        np.testing.assert_allclose(x, [2.0, 1.0])

    def test_matches_numpy(self):
        """Random well-conditioned 8x8 systems agree with numpy."""
        from docscan.utils.linalg import solve_linear_system

        rng = np.random.default_rng(7)
        A = rng.uniform(-500, 500, size=(8, 8)) + np.eye(8) * 1000
        b = rng.uniform(-10, 10, size=8)

        x = solve_linear_system(A, b)

        np.testing.assert_allclose(x, np.linalg.solve(A, b), rtol=1e-9, atol=1e-12)

    def test_mixed_magnitudes(self):
        """Rows mixing pixel-scale and unit entries still solve accurately."""
        from docscan.utils.linalg import solve_linear_system

        A = np.array([
            [1e-3, 1200.0, 1.0],
            [850.0, 1.0, 1.0],
            [1.0, 1.0, 1e-3],
        ])
        expected = np.array([0.5, -2.0, 3.0])

        x = solve_linear_system(A, A @ expected)

        np.testing.assert_allclose(x, expected, rtol=1e-9)

    def test_singular_matrix(self):
        """Linearly dependent rows raise SingularSystemError."""
        from docscan.utils.linalg import solve_linear_system
        from docscan.exceptions import SingularSystemError

        with pytest.raises(SingularSystemError):
            solve_linear_system([[1.0, 2.0], [2.0, 4.0]], [1.0, 2.0])

    def test_input_not_modified(self):
        """The caller's matrix and vector are left untouched."""
        from docscan.utils.linalg import solve_linear_system

        A = np.array([[0.0, 2.0], [1.0, 1.0]])
        b = np.array([2.0, 3.0])
        A_before, b_before = A.copy(), b.copy()

        solve_linear_system(A, b)

        np.testing.assert_array_equal(A, A_before)
        np.testing.assert_array_equal(b, b_before)

    def test_shape_mismatch(self):
        """Non-square or mismatched systems are rejected."""
        from docscan.utils.linalg import solve_linear_system

        with pytest.raises(ValueError):
            solve_linear_system([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]], [1.0, 2.0])
        with pytest.raises(ValueError):
            solve_linear_system([[1.0, 0.0], [0.0, 1.0]], [1.0, 2.0, 3.0])


class TestHomography:
    """Test four-point homography estimation."""

    @pytest.fixture
    def correspondences(self):
        src = [(12.5, 20.0), (310.0, 14.0), (322.0, 241.0), (6.0, 262.5)]
        dst = [(0.0, 0.0), (400.0, 0.0), (400.0, 300.0), (0.0, 300.0)]
        return src, dst

    def test_round_trip(self, correspondences):
        """Applying T to each source point reproduces its destination."""
        from docscan.utils.homography import estimate_homography, apply_homography

        src, dst = correspondences
        T = estimate_homography(src, dst)

        for (x, y), (u, v) in zip(src, dst):
            px, py = apply_homography(T, x, y)
            assert px == pytest.approx(u, rel=1e-6, abs=1e-6)
            assert py == pytest.approx(v, rel=1e-6, abs=1e-6)

    def test_bottom_right_fixed(self, correspondences):
        """The matrix is 3x3, read-only, with T[2, 2] == 1."""
        from docscan.utils.homography import estimate_homography

        T = estimate_homography(*correspondences)

        assert T.shape == (3, 3)
        assert T[2, 2] == 1.0
        assert not T.flags.writeable

    def test_identity(self):
        """Identical point sets give the identity transform."""
        from docscan.utils.homography import estimate_homography

        pts = [(0, 0), (640, 0), (640, 480), (0, 480)]
        T = estimate_homography(pts, pts)

        np.testing.assert_allclose(T, np.eye(3), atol=1e-9)

    def test_inverse_direction(self, correspondences):
        """Swapping src and dst gives the inverse mapping."""
        from docscan.utils.homography import estimate_homography, apply_homography

        src, dst = correspondences
        forward = estimate_homography(src, dst)
        backward = estimate_homography(dst, src)

        u, v = apply_homography(forward, 100.0, 120.0)
        x, y = apply_homography(backward, u, v)

        assert x == pytest.approx(100.0, rel=1e-6)
        assert y == pytest.approx(120.0, rel=1e-6)

    def test_vectorized(self, correspondences):
        """apply_homography accepts numpy arrays."""
        from docscan.utils.homography import estimate_homography, apply_homography

        src, dst = correspondences
        T = estimate_homography(src, dst)
        xs = np.array([p[0] for p in src])
        ys = np.array([p[1] for p in src])

        px, py = apply_homography(T, xs, ys)

        np.testing.assert_allclose(px, [p[0] for p in dst], atol=1e-6)
        np.testing.assert_allclose(py, [p[1] for p in dst], atol=1e-6)

    def test_accepts_corner_set(self):
        """CornerSet and Point inputs work like tuples."""
        from docscan.utils.homography import estimate_homography
        from docscan.utils.raster import CornerSet

        corners = CornerSet([(0, 0), (10, 0), (10, 10), (0, 10)])
        T = estimate_homography(corners, corners)

        np.testing.assert_allclose(T, np.eye(3), atol=1e-9)

    def test_collinear_points(self):
        """Points on one line cannot define a homography."""
        from docscan.utils.homography import estimate_homography
        from docscan.exceptions import SingularSystemError

        src = [(0, 0), (1, 0), (2, 0), (3, 0)]
        dst = [(0, 0), (10, 0), (10, 10), (0, 10)]

        with pytest.raises(SingularSystemError):
            estimate_homography(src, dst)

    def test_three_collinear_corners(self):
        """A quad with three corners on one edge line has no homography."""
        from docscan.utils.homography import estimate_homography
        from docscan.exceptions import SingularSystemError

        quad = [(10, 10), (50, 10), (90, 10), (10, 90)]
        square = [(0, 0), (100, 0), (100, 100), (0, 100)]

        with pytest.raises(SingularSystemError):
            estimate_homography(quad, square)
        with pytest.raises(SingularSystemError):
            estimate_homography(square, quad)

    def test_nearly_collinear_still_solves(self):
        """A thin but genuine quad is not mistaken for a degenerate one."""
        from docscan.utils.homography import estimate_homography, apply_homography

        quad = [(10, 10), (50, 11), (90, 10), (10, 90)]
        square = [(0, 0), (100, 0), (100, 100), (0, 100)]

        T = estimate_homography(quad, square)

        px, py = apply_homography(T, 50, 11)
        assert px == pytest.approx(100.0, abs=1e-6)
        assert py == pytest.approx(0.0, abs=1e-6)

    def test_coincident_points(self):
        """Four copies of one point are degenerate."""
        from docscan.utils.homography import estimate_homography
        from docscan.exceptions import SingularSystem

        src = [(5, 5)] * 4
        dst = [(0, 0), (10, 0), (10, 10), (0, 10)]

        with pytest.raises(SingularSystem):
            estimate_homography(src, dst)

    def test_wrong_point_count(self):
        """Exactly four correspondences are required."""
        from docscan.utils.homography import estimate_homography

        with pytest.raises(ValueError):
            estimate_homography([(0, 0), (1, 0), (1, 1)], [(0, 0), (1, 0), (1, 1)])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
