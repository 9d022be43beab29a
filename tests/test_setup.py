"""
Setup tests
"""
import sys
import pytest


def test_python_version():
    """Python 3.8 or newer is required"""
    assert sys.version_info >= (3, 8), "Python 3.8 or newer is required"


def test_imports():
    """The package and its subpackages import"""
    try:
        import face_patch
        from face_patch import compositing, editor, generation, geometry, ui  # noqa: F401
        assert hasattr(face_patch, '__version__')
    except ImportError as e:
        pytest.fail(f"face_patch cannot be imported: {e}")


def test_version_is_consistent():
    import face_patch
    from face_patch import compositing, generation

    assert compositing.__version__ == face_patch.__version__
    assert generation.__version__ == face_patch.__version__
