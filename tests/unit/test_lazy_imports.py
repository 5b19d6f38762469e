"""Tests for lazy import system in bootwatch.__init__."""

from __future__ import annotations

import subprocess
import sys

import pytest


class TestLazyImports:
    """Test PEP 562 lazy loading in bootwatch.__init__."""

    def test_lazy_import_does_not_eagerly_load(self) -> None:
        """Importing bootwatch alone loads no subpackage (checked in a clean interpreter)."""
        code = (
            "import sys, bootwatch; "
            "loaded = [m for m in ('bootwatch.core', 'bootwatch.models', 'bootwatch.services') "
            "if m in sys.modules]; "
            "print(','.join(loaded))"
        )
        result = subprocess.run(
            [sys.executable, "-c", code], capture_output=True, text=True, check=True
        )
        assert result.stdout.strip() == ""

    def test_lazy_import_resolves_on_access(self) -> None:
        from bootwatch import Prober
        from bootwatch.services.prober.service import Prober as DirectProber

        assert Prober is DirectProber

    def test_lazy_import_caches_after_first_access(self) -> None:
        import bootwatch

        _ = bootwatch.BootstrapTarget
        assert "BootstrapTarget" in vars(bootwatch)

    def test_lazy_import_invalid_attribute(self) -> None:
        import bootwatch

        with pytest.raises(AttributeError, match="no_such_thing"):
            _ = getattr(bootwatch, "no_such_thing")  # noqa: B009

    def test_all_exports_are_in_lazy_imports(self) -> None:
        import bootwatch

        assert set(bootwatch.__all__) == set(bootwatch._LAZY_IMPORTS)

    def test_dir_returns_all(self) -> None:
        import bootwatch

        assert dir(bootwatch) == bootwatch.__all__

    def test_version_is_accessible(self) -> None:
        import bootwatch

        assert isinstance(bootwatch.__version__, str)
        assert bootwatch.__version__
