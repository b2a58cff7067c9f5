"""Shared fixtures: an in-memory package backend and session contexts built on it."""

import pytest

from backend.models import Dependency, InstallScope, InstalledPackage, OperationResult
from catalog import ModuleDescriptor
from cli_config import Settings
from constants import Constants
from registry.gallery import RemotePackageInfo
from session import SessionContext

GALLERY = Constants.REGISTRY_URL_GALLERY


class FakeBackend:
    """Package backend keeping installed versions in memory and recording every mutation."""

    generation = "fake"

    def __init__(self):
        self.records = []
        self.side_loaded = []
        self.remote = {}
        self.failures = {}
        self.calls = []

    # ----- setup helpers -----

    def add(self, name, version, repository=GALLERY, scope=InstallScope.CURRENT_USER, dependencies=()):
        deps = tuple(d if isinstance(d, Dependency) else Dependency(d) for d in dependencies)
        self.records.append(InstalledPackage(
            name=name, version=version, path=f"/home/user/Modules/{name}/{version}",
            scope=scope, repository=repository, dependencies=deps,
        ))

    def side_load(self, name, version):
        """Copy on the module path that the package manager never recorded."""
        self.side_loaded.append(InstalledPackage(
            name=name, version=version, path=f"/home/user/Modules/{name}/{version}",
            scope=InstallScope.CURRENT_USER,
        ))

    def fail(self, action, name, error):
        self.failures[(action, name.lower())] = error

    def versions_of(self, name):
        return sorted(r.version for r in self.records if r.name.lower() == name.lower())

    def mutations(self, action=None):
        return [c for c in self.calls if action is None or c[0] == action]

    def _check(self, action, name):
        error = self.failures.get((action, name.lower()))
        if error is not None:
            raise error

    # ----- backend interface -----

    def list_installed(self, name, list_available=False, all_scopes=True, scope=None):
        self._check("list", name)
        pool = self.records + self.side_loaded if list_available else self.records
        found = [r for r in pool if r.name.lower() == name.lower()]
        if not all_scopes and scope is not None:
            found = [r for r in found if r.scope is scope]
        return found

    def find(self, name, repository=GALLERY, prerelease=False):
        value = self.remote.get(name.lower())
        if isinstance(value, Exception):
            raise value
        if value is None:
            return None
        return RemotePackageInfo(name=name, version=value, repository=repository)

    def install(self, name, scope=InstallScope.CURRENT_USER, prerelease=False, allow_clobber=True):
        self._check("install", name)
        version = self.remote.get(name.lower(), "1.0.0")
        self.add(name, version, scope=scope)
        self.calls.append(("install", name, version))
        return OperationResult(name=name, action="install", version=version)

    def update(self, name, scope=None, prerelease=False):
        self._check("update", name)
        version = self.remote[name.lower()]
        existing = [r for r in self.records if r.name.lower() == name.lower()]
        self.add(name, version, repository=existing[0].repository if existing else GALLERY,
                 scope=scope or InstallScope.CURRENT_USER,
                 dependencies=existing[0].dependencies if existing else ())
        self.calls.append(("update", name, version))
        return OperationResult(name=name, action="update", version=version)

    def uninstall(self, name, version=Constants.ALL_VERSIONS, scope=None, prerelease=False):
        self._check("uninstall", name)
        self.records = [
            r for r in self.records
            if not (r.name.lower() == name.lower() and version in (Constants.ALL_VERSIONS, r.version))
        ]
        self.calls.append(("uninstall", name, version))
        return OperationResult(name=name, action="uninstall", version=version)


def descriptor(name, repository=GALLERY, replaced_by=None):
    return ModuleDescriptor(name=name, description=f"{name} module", repository=repository,
                            replaced_by=replaced_by)


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def make_ctx(fake_backend):
    """Build a SessionContext over ``fake_backend`` for the given module names."""
    def _make(*names, settings=None):
        catalog = tuple(n if isinstance(n, ModuleDescriptor) else descriptor(n) for n in names)
        return SessionContext.create(catalog, fake_backend, settings or Settings())
    return _make
