"""Tests for CatalogListModel."""

import asyncio

import pytest

pytest.importorskip("PySide6.QtCore")

from PySide6.QtCore import QCoreApplication, Qt

from eclat.gui.ui.models.catalog_list_model import CatalogListModel
from eclat.gui.ui.models.roles import Roles
from eclat.gui.viewmodels.gallery_viewmodel import GalleryViewModel
from eclat.utils.aio import TaskTracker

from fakes import Engine, FakeCatalogBackend, make_asset


@pytest.fixture(scope="module", autouse=True)
def qcore_app():
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


def _make_model(count=30):
    engine = Engine(FakeCatalogBackend(make_asset(i) for i in range(1, count + 1)))
    vm = GalleryViewModel(engine.query, engine.filters, engine.selection, engine.bus, TaskTracker())
    model = CatalogListModel(vm, engine.selection)
    return model, vm, engine


def test_rows_follow_loaded_pages():
    async def scenario():
        model, vm, engine = _make_model()
        inserted = []
        model.rowsInserted.connect(lambda parent, first, last: inserted.append((first, last)))

        await vm.load_more()
        await vm.load_more()

        assert model.rowCount() == 30
        assert inserted == [(0, 19), (20, 29)]
        assert model.canFetchMore() is False

    asyncio.run(scenario())


def test_data_roles():
    async def scenario():
        model, vm, _ = _make_model(2)
        await vm.load_more()

        index = model.index(1, 0)
        assert model.data(index, Qt.DisplayRole) == "asset_2.png"
        assert model.data(index, Roles.ASSET_ID) == 2
        assert model.data(index, Roles.DIMENSIONS) == (512, 512)
        assert model.data(index, Roles.IS_SELECTED) is False
        assert model.data(model.index(5, 0), Roles.NAME) is None
        assert model.roleNames()[Roles.ASSET_ID] == b"assetId"
        assert model.row_of(2) == 1

    asyncio.run(scenario())


def test_edits_and_selection_emit_data_changed():
    async def scenario():
        model, vm, engine = _make_model(3)
        await vm.load_more()
        changed = []
        model.dataChanged.connect(lambda top, bottom, roles: changed.append(top.row()))

        await engine.mutations.toggle_favorite(2)
        engine.selection.select_single(3)

        assert model.data(model.index(1, 0), Roles.IS_FAVORITE) is True
        assert model.data(model.index(2, 0), Roles.IS_SELECTED) is True
        assert 1 in changed
        assert 2 in changed

    asyncio.run(scenario())


def test_snapshot_change_resets_model():
    async def scenario():
        model, vm, engine = _make_model(3)
        await vm.load_more()
        resets = []
        model.modelReset.connect(lambda: resets.append(True))

        engine.filters.set_mode("trash")

        assert resets == [True]
        assert model.rowCount() == 0
        model.detach()

    asyncio.run(scenario())
