"""
Instance classification

Correlates EC2 instances with GitHub registered runners and decides which
instances count towards the pool. Everything here is pure: both snapshots
are taken as given and never modified.

Correlation is by name. A runner registers under its instance id, optionally
behind a configured name prefix; provider runner ids are not used because
they are not guaranteed to be unique across the two views.
"""

from collections import Counter
from datetime import datetime, timedelta
from typing import Dict, Iterable, Mapping, Optional

import structlog

from runner_pool.common.constants import CAPACITY_CLASSES, InstanceClass, RunnerStatus
from runner_pool.common.schemas import Instance, RegisteredRunner
from runner_pool.common.utils import ensure_aware


logger = structlog.get_logger(__name__)


def normalize_runner_name(name: str, prefix: str = "") -> str:
    """
    Map a registered runner name to the instance id it should match.

    The configured prefix is stripped when the name carries it; other names
    are matched as they are, so runners registered before the prefix was
    introduced still correlate with their instances.
    """
    if prefix and name.startswith(prefix):
        return name[len(prefix):]
    return name


def index_runners(runners: Iterable[RegisteredRunner], prefix: str = "") -> Dict[str, RegisteredRunner]:
    """Key runners by normalized name; the first of any duplicates wins"""
    index: Dict[str, RegisteredRunner] = {}
    for runner in runners:
        key = normalize_runner_name(runner.name, prefix)
        if not key:
            logger.warning("Registered runner name is empty after removing the prefix, ignoring it",
                           runner_id=runner.id, runner_name=runner.name, prefix=prefix)
            continue
        if key in index:
            logger.warning(
                "Registered runners normalize to the same name, keeping the first",
                name=key,
                kept_runner_id=index[key].id,
                ignored_runner_id=runner.id,
            )
            continue
        index[key] = runner
    return index


def classify_instance(
    instance: Instance,
    runner: Optional[RegisteredRunner],
    now: datetime,
    boot_grace_period: timedelta,
) -> InstanceClass:
    if runner is not None:
        if runner.busy:
            return InstanceClass.BUSY
        if runner.status == RunnerStatus.OFFLINE:
            return InstanceClass.OFFLINE
        return InstanceClass.IDLE
    
    if ensure_aware(now) - ensure_aware(instance.launch_time) < boot_grace_period:
        return InstanceClass.BOOTING
    return InstanceClass.ORPHAN


def classify_pool(
    instances: Iterable[Instance],
    runners: Iterable[RegisteredRunner],
    now: datetime,
    boot_grace_period: timedelta,
    prefix: str = "",
) -> Dict[str, InstanceClass]:
    """Classify every instance, keyed by instance id"""
    index = index_runners(runners, prefix)
    classes: Dict[str, InstanceClass] = {}
    
    for instance in instances:
        if instance.instance_id in classes:
            logger.warning("Instance listed more than once, counting it once",
                           instance_id=instance.instance_id)
            continue
        
        runner = index.get(instance.instance_id)
        instance_class = classify_instance(instance, runner, now, boot_grace_period)
        classes[instance.instance_id] = instance_class
        
        logger.debug(
            "Classified runner instance",
            instance_id=instance.instance_id,
            runner_name=runner.name if runner else None,
            instance_class=instance_class.value,
            counted=instance_class in CAPACITY_CLASSES,
        )
    
    return classes


def count_classes(classes: Mapping[str, InstanceClass]) -> Dict[str, int]:
    counts = Counter(instance_class.value for instance_class in classes.values())
    return {instance_class.value: counts.get(instance_class.value, 0) for instance_class in InstanceClass}


def effective_capacity(classes: Mapping[str, InstanceClass]) -> int:
    """Idle plus booting instances"""
    return sum(1 for instance_class in classes.values() if instance_class in CAPACITY_CLASSES)
