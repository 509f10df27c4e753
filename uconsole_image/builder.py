# uconsole_image/builder.py
import time
from typing import Callable, Optional

from uconsole_image.config.models import BuildConfig
from uconsole_image.emitters import ConfigEmitter
from uconsole_image.mounts import mount_partitions
from uconsole_image.partitions import partition_device
from uconsole_image.provisioning import Provisioner, build_plan
from uconsole_image.requirements import check_requirements
from uconsole_image.resources import BuildResources
from uconsole_image.rootfs import download_rootfs, extract_rootfs, prepare_chroot
from uconsole_image.target import Target, resolve_target
from uconsole_image.utils.executor import Executor


def build_image(target_path: str,
                config: BuildConfig,
                executor: Executor,
                confirm: Callable[[str], str],
                resources: Optional[BuildResources] = None,
                machine: Optional[str] = None,
                euid: Optional[int] = None,
                sleep: Callable[[float], None] = time.sleep) -> Target:
    """
    Runs the whole build against ``target_path``.

    Everything acquired along the way is recorded in ``resources`` and
    released exactly once by the ``finally`` clause, whether the build
    succeeds, fails or is interrupted.
    """
    logger = executor.logger
    resources = resources if resources is not None else BuildResources()

    try:
        check_requirements(logger, euid=euid, machine=machine)
        logger.info(config.display_summary(target_path))

        tarball = download_rootfs(config, logger)
        target = resolve_target(target_path, executor, resources, config, confirm)
        partitions = partition_device(executor, target.device, config, sleep=sleep)

        mount_point = mount_partitions(executor, partitions, resources)
        extract_rootfs(executor, tarball, mount_point)
        prepare_chroot(executor, resources, machine=machine)

        logger.section("Configuring system")
        Provisioner(executor, mount_point).apply(build_plan(config))
        logger.success("System configured")

        ConfigEmitter(executor, mount_point, config.user.name).write_all(partitions.root)
    finally:
        resources.teardown(executor)

    return target
