"""
Three-component vectors and 3x3 matrices used by the moment equations.

Both types are immutable values backed by float64 numpy arrays: every
operator returns a fresh object, and ``+=`` rebinds the name to the result.
Equality is exact component comparison.
"""

import numpy as np
from typing import Dict, Iterator, List, Optional, Union

from .exceptions import SingularMatrixError
from ..utils.io import to_json


_DIRECTIONS = {
    "+x": (1.0, 0.0, 0.0),
    "-x": (-1.0, 0.0, 0.0),
    "+y": (0.0, 1.0, 0.0),
    "-y": (0.0, -1.0, 0.0),
    "+z": (0.0, 0.0, 1.0),
    "-z": (0.0, 0.0, -1.0),
}


class Vector3:
    """
    A Cartesian 3D vector.

    Examples:
        >>> Vector3(1, 2, 3).cross(Vector3(direction="+x"))
        Vector3(0.0, 3.0, -2.0)
    """

    __slots__ = ("_v",)

    def __init__(
        self,
        x: float = 0.0,
        y: float = 0.0,
        z: float = 0.0,
        direction: Optional[str] = None,
        normalize: bool = False
    ):
        """
        Initialize a vector.

        Args:
            x, y, z: Cartesian components
            direction: Optional preset ("+x", "-x", "+y", "-y", "+z", "-z"
                or "random"); overrides the components
            normalize: Whether to normalize the given components
        """
        v = np.array([x, y, z], dtype=np.float64)
        if normalize:
            v = _normalized(v)

        if direction is not None:
            key = direction.strip().lower()
            if key in _DIRECTIONS:
                v = np.array(_DIRECTIONS[key], dtype=np.float64)
            elif key == "random":
                v = _normalized(np.random.uniform(-1.0, 1.0, 3))
            else:
                raise ValueError(f"Unknown direction: {direction}")

        self._v = v

    @classmethod
    def from_array(cls, array) -> 'Vector3':
        """Build a vector from any 3-element sequence."""
        array = np.asarray(array, dtype=np.float64)
        if array.shape != (3,):
            raise ValueError(f"Vector3 needs 3 components, got shape {array.shape}")
        vector = cls.__new__(cls)
        vector._v = array.copy()
        return vector

    @classmethod
    def zero(cls) -> 'Vector3':
        return cls()

    @property
    def x(self) -> float:
        return float(self._v[0])

    @property
    def y(self) -> float:
        return float(self._v[1])

    @property
    def z(self) -> float:
        return float(self._v[2])

    def to_array(self) -> np.ndarray:
        """Return a copy of the components as a numpy array."""
        return self._v.copy()

    def norm(self) -> float:
        return float(np.sqrt(np.dot(self._v, self._v)))

    def normalized(self) -> 'Vector3':
        """Unit vector along self; the zero vector is returned unchanged."""
        return Vector3.from_array(_normalized(self._v))

    def dot(self, other: 'Vector3') -> float:
        return float(np.dot(self._v, other._v))

    def cross(self, other: Union['Vector3', 'Matrix3']) -> Union['Vector3', 'Matrix3']:
        """
        Cross product.

        With a Matrix3 operand the product is taken column by column:
        column j of the result is self × (column j of other).
        """
        if isinstance(other, Matrix3):
            return Matrix3.from_array(np.cross(self._v, other._m, axis=0))
        return Vector3.from_array(np.cross(self._v, other._v))

    def outer(self, other: 'Vector3') -> 'Matrix3':
        """Tensor product, (a⊗b)_ij = a_i b_j."""
        return Matrix3.from_array(np.outer(self._v, other._v))

    def __add__(self, other: 'Vector3') -> 'Vector3':
        if not isinstance(other, Vector3):
            return NotImplemented
        return Vector3.from_array(self._v + other._v)

    def __sub__(self, other: 'Vector3') -> 'Vector3':
        if not isinstance(other, Vector3):
            return NotImplemented
        return Vector3.from_array(self._v - other._v)

    def __neg__(self) -> 'Vector3':
        return Vector3.from_array(-self._v)

    def __mul__(self, scalar: float) -> 'Vector3':
        if isinstance(scalar, (Vector3, Matrix3)):
            return NotImplemented
        return Vector3.from_array(float(scalar) * self._v)

    __rmul__ = __mul__

    def __truediv__(self, scalar: float) -> 'Vector3':
        return Vector3.from_array(self._v / float(scalar))

    def __matmul__(self, other: 'Vector3') -> float:
        if not isinstance(other, Vector3):
            return NotImplemented
        return self.dot(other)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Vector3):
            return NotImplemented
        return bool(np.array_equal(self._v, other._v))

    def __hash__(self) -> int:
        return hash(tuple(self._v.tolist()))

    def __iter__(self) -> Iterator[float]:
        return iter(self._v.tolist())

    def __repr__(self) -> str:
        return f"Vector3({self.x!r}, {self.y!r}, {self.z!r})"

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "z": self.z}

    def jsonify(self) -> str:
        return to_json(self.to_dict())


def distance(a: Vector3, b: Vector3) -> float:
    """Euclidean distance between two points."""
    return (a - b).norm()


_FILLS = {
    "zero": np.zeros((3, 3)),
    "identity": np.eye(3),
    "test": np.array([[3.0, 3.0, 9.0],
                      [4.0, 1.0, 0.0],
                      [5.0, 6.0, 0.0]]),
    "antisym": np.array([[0.0, 1.0, 2.0],
                         [-1.0, 0.0, 3.0],
                         [-2.0, -3.0, 0.0]]),
}

_NAMES = ("xx", "xy", "xz", "yx", "yy", "yz", "zx", "zy", "zz")


class Matrix3:
    """
    A real 3x3 matrix, stored row-major.

    ``@`` is the matrix product (with a Vector3 operand it returns a Vector3);
    ``*`` is reserved for scalars.
    """

    __slots__ = ("_m",)

    def __init__(
        self,
        xx: float = 0.0, xy: float = 0.0, xz: float = 0.0,
        yx: float = 0.0, yy: float = 0.0, yz: float = 0.0,
        zx: float = 0.0, zy: float = 0.0, zz: float = 0.0,
        fill: Optional[str] = None
    ):
        """
        Initialize a matrix from its nine components (row by row).

        Args:
            fill: Optional preset ("zero", "identity", "test", "antisym");
                overrides the components
        """
        if fill is not None:
            key = fill.strip().lower()
            if key not in _FILLS:
                raise ValueError(f"Unknown fill: {fill}")
            self._m = _FILLS[key].astype(np.float64)
        else:
            self._m = np.array([[xx, xy, xz],
                                [yx, yy, yz],
                                [zx, zy, zz]], dtype=np.float64)

    @classmethod
    def from_array(cls, array) -> 'Matrix3':
        array = np.asarray(array, dtype=np.float64)
        if array.shape != (3, 3):
            raise ValueError(f"Matrix3 needs a 3x3 array, got shape {array.shape}")
        matrix = cls.__new__(cls)
        matrix._m = array.copy()
        return matrix

    @classmethod
    def identity(cls) -> 'Matrix3':
        return cls(fill="identity")

    @staticmethod
    def outer(a: Vector3, b: Vector3) -> 'Matrix3':
        return a.outer(b)

    def to_array(self) -> np.ndarray:
        return self._m.copy()

    def __getitem__(self, index):
        return float(self._m[index])

    def __getattr__(self, name):
        if name in _NAMES:
            i = _NAMES.index(name)
            return float(self._m[i // 3, i % 3])
        raise AttributeError(name)

    def rows(self) -> List[Vector3]:
        return [Vector3.from_array(row) for row in self._m]

    def columns(self) -> List[Vector3]:
        return [Vector3.from_array(col) for col in self._m.T]

    def transpose(self) -> 'Matrix3':
        return Matrix3.from_array(self._m.T)

    def trace(self) -> float:
        return float(np.trace(self._m))

    def diagonal_part(self) -> 'Matrix3':
        """Diagonal matrix holding the diagonal entries of self."""
        return Matrix3.from_array(np.diag(np.diag(self._m)))

    def determinant(self) -> float:
        m = self._m
        return float(
            m[0, 0] * (m[1, 1] * m[2, 2] - m[1, 2] * m[2, 1])
            - m[0, 1] * (m[1, 0] * m[2, 2] - m[1, 2] * m[2, 0])
            + m[0, 2] * (m[1, 0] * m[2, 1] - m[1, 1] * m[2, 0])
        )

    def cofactor(self) -> 'Matrix3':
        """Matrix of cofactors, C_ij = (-1)^(i+j) M_ij."""
        m = self._m
        c = np.empty((3, 3))
        for i in range(3):
            for j in range(3):
                minor = np.delete(np.delete(m, i, axis=0), j, axis=1)
                c[i, j] = (-1) ** (i + j) * (minor[0, 0] * minor[1, 1] - minor[0, 1] * minor[1, 0])
        return Matrix3.from_array(c)

    def adjugate(self) -> 'Matrix3':
        """Transpose of the cofactor matrix; refused for singular matrices."""
        if self.determinant() == 0.0:
            raise SingularMatrixError("Adjugate of a singular matrix (zero determinant)")
        return self.cofactor().transpose()

    def inverse(self) -> 'Matrix3':
        det = self.determinant()
        if det == 0.0:
            raise SingularMatrixError("Cannot invert a singular matrix (zero determinant)")
        return self.cofactor().transpose() / det

    def __add__(self, other: 'Matrix3') -> 'Matrix3':
        if not isinstance(other, Matrix3):
            return NotImplemented
        return Matrix3.from_array(self._m + other._m)

    def __sub__(self, other: 'Matrix3') -> 'Matrix3':
        if not isinstance(other, Matrix3):
            return NotImplemented
        return Matrix3.from_array(self._m - other._m)

    def __neg__(self) -> 'Matrix3':
        return Matrix3.from_array(-self._m)

    def __mul__(self, scalar: float) -> 'Matrix3':
        if isinstance(scalar, (Vector3, Matrix3)):
            return NotImplemented
        return Matrix3.from_array(float(scalar) * self._m)

    __rmul__ = __mul__

    def __truediv__(self, scalar: float) -> 'Matrix3':
        return Matrix3.from_array(self._m / float(scalar))

    def __matmul__(self, other: Union['Matrix3', Vector3]) -> Union['Matrix3', Vector3]:
        if isinstance(other, Matrix3):
            return Matrix3.from_array(self._m @ other._m)
        if isinstance(other, Vector3):
            return Vector3.from_array(self._m @ other._v)
        return NotImplemented

    def __eq__(self, other) -> bool:
        if not isinstance(other, Matrix3):
            return NotImplemented
        return bool(np.array_equal(self._m, other._m))

    def __hash__(self) -> int:
        return hash(tuple(self._m.ravel().tolist()))

    def __repr__(self) -> str:
        values = ", ".join(repr(float(v)) for v in self._m.ravel())
        return f"Matrix3({values})"

    def to_dict(self) -> Dict[str, float]:
        return {name: float(v) for name, v in zip(_NAMES, self._m.ravel())}

    def jsonify(self) -> str:
        return to_json(self.to_dict())


def _normalized(v: np.ndarray) -> np.ndarray:
    norm = np.sqrt(np.dot(v, v))
    if norm == 0.0:
        return v.copy()
    return v / norm
