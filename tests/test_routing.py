import os

import pytest

from codeupdate.deploy.release import ReleaseLayout
from codeupdate.deploy.routing import RoutingConfigManager
from codeupdate.errors import ConfigCreateError, ConfigWriteError, ErrorCode, TemplateMissing


def _release(settings, ref, template="root {project-path}public;\n"):
    release_dir = ReleaseLayout(settings).release_dir("shop", ref)
    (release_dir / "prod").mkdir(parents=True)
    if template is not None:
        (release_dir / "prod" / "nginx.conf").write_text(template)
    return release_dir


def _live(settings):
    return ReleaseLayout(settings).routing_config("shop")


def test_render_substitutes_release_path(settings, logger):
    release_dir = _release(settings, "v42")

    rendered = RoutingConfigManager(settings, logger).render(release_dir)

    assert rendered == f"root {os.path.abspath(release_dir)}{os.sep}public;\n"


def test_missing_template_touches_nothing(settings, logger):
    release_dir = _release(settings, "v42", template=None)
    live = _live(settings)
    live.parent.mkdir(parents=True)
    live.write_text("previous")

    with pytest.raises(TemplateMissing) as exc_info:
        RoutingConfigManager(settings, logger).swap("shop", release_dir)

    assert exc_info.value.code == ErrorCode.TEMPLATE_MISSING
    assert live.read_text() == "previous"
    assert not live.with_name("shop.conf.bck").exists()


def test_first_swap_then_commit(settings, logger):
    manager = RoutingConfigManager(settings, logger)
    release_dir = _release(settings, "v42")

    swap = manager.swap("shop", release_dir)
    manager.commit(swap)

    assert swap.had_previous is False
    assert str(release_dir) in _live(settings).read_text()
    assert not swap.backup.exists()


def test_swap_keeps_backup_until_commit(settings, logger):
    manager = RoutingConfigManager(settings, logger)
    live = _live(settings)
    live.parent.mkdir(parents=True)
    live.write_text("previous")

    swap = manager.swap("shop", _release(settings, "v42"))

    assert swap.backup.read_text() == "previous"
    assert "v42" in live.read_text()
    assert not live.with_name("shop.conf.tmp").exists()

    manager.commit(swap)
    assert not swap.backup.exists()


def test_rollback_restores_previous_config(settings, logger):
    manager = RoutingConfigManager(settings, logger)
    live = _live(settings)
    live.parent.mkdir(parents=True)
    live.write_text("previous")

    swap = manager.swap("shop", _release(settings, "v42"))
    manager.rollback(swap)

    assert live.read_text() == "previous"
    assert not swap.backup.exists()


def test_rollback_of_first_deployment_removes_config(settings, logger):
    manager = RoutingConfigManager(settings, logger)

    swap = manager.swap("shop", _release(settings, "v42"))
    manager.rollback(swap)

    assert not _live(settings).exists()
    assert not swap.backup.exists()


def test_stale_backup_is_dropped_on_first_deployment(settings, logger):
    backup = ReleaseLayout(settings).routing_backup("shop")
    backup.parent.mkdir(parents=True)
    backup.write_text("stale")

    swap = RoutingConfigManager(settings, logger).swap("shop", _release(settings, "v42"))

    assert swap.had_previous is False
    assert not backup.exists()


def test_empty_render_is_write_error(settings, logger):
    live = _live(settings)
    live.parent.mkdir(parents=True)
    live.write_text("previous")

    with pytest.raises(ConfigWriteError) as exc_info:
        RoutingConfigManager(settings, logger).swap("shop", _release(settings, "v42", template=""))

    assert exc_info.value.code == ErrorCode.CONFIG_WRITE
    assert live.read_text() == "previous"
    assert not live.with_name("shop.conf.bck").exists()
    assert not live.with_name("shop.conf.tmp").exists()


def test_unwritable_destination_is_create_error(settings, logger):
    live = _live(settings)
    live.parent.mkdir(parents=True)
    live.write_text("previous")
    # le fichier temporaire ne peut pas être ouvert en écriture si c'est un dossier
    live.with_name("shop.conf.tmp").mkdir()

    with pytest.raises(ConfigCreateError) as exc_info:
        RoutingConfigManager(settings, logger).swap("shop", _release(settings, "v42"))

    assert exc_info.value.code == ErrorCode.CONFIG_CREATE
    assert live.read_text() == "previous"
    assert not live.with_name("shop.conf.bck").exists()
