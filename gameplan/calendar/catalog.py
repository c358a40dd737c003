"""Built-in Game Plan tasks.

Weekdays use 0 = Sunday .. 6 = Saturday. recommended_days of None means
every day.
"""

from __future__ import annotations

from dataclasses import dataclass

from gameplan.calendar.types import PlanCategory

ALL_DAYS: tuple[int, ...] = (0, 1, 2, 3, 4, 5, 6)


@dataclass(frozen=True)
class SystemTask:
    """A built-in task the Game Plan shows without any user record."""

    task_id: str
    title: str
    description: str
    category: PlanCategory
    link: str
    module_gate: str | None = None
    recommended_days: tuple[int, ...] | None = None
    completion_marker: str | None = None

    def default_days(self) -> tuple[int, ...]:
        return self.recommended_days if self.recommended_days is not None else ALL_DAYS


@dataclass(frozen=True)
class ProgramDefinition:
    """A structured multi-week workout program shown as one daily session."""

    task_id: str
    title: str
    sub_module: str
    module_gate: str
    recommended_days: tuple[int, ...]
    link: str


DEFAULT_DAILY_TASKS: tuple[SystemTask, ...] = (
    SystemTask(
        task_id="morning-checkin",
        title="gamePlan.morningCheckin.title",
        description="gamePlan.morningCheckin.description",
        category=PlanCategory.DEFAULT_DAILY_TASK,
        link="/vault?tab=checkin",
    ),
    SystemTask(
        task_id="nutrition",
        title="gamePlan.nutrition.title",
        description="gamePlan.nutrition.description",
        category=PlanCategory.DEFAULT_DAILY_TASK,
        link="/vault",
        completion_marker="nutrition",
    ),
    SystemTask(
        task_id="mindfuel",
        title="gamePlan.mindfuel.title",
        description="gamePlan.mindfuel.description",
        category=PlanCategory.DEFAULT_DAILY_TASK,
        link="/mind-fuel",
    ),
    SystemTask(
        task_id="night-reflection",
        title="gamePlan.nightReflection.title",
        description="gamePlan.nightReflection.description",
        category=PlanCategory.DEFAULT_DAILY_TASK,
        link="/vault?tab=reflection",
    ),
)

MODULE_GATED_TASKS: tuple[SystemTask, ...] = (
    SystemTask(
        task_id="video-hitting",
        title="gamePlan.video.title",
        description="gamePlan.video.description",
        category=PlanCategory.MODULE_GATED_TASK,
        link="/analyze/hitting?sport={sport}",
        module_gate="hitting",
        completion_marker="video",
    ),
    SystemTask(
        task_id="video-pitching",
        title="gamePlan.video.title",
        description="gamePlan.video.description",
        category=PlanCategory.MODULE_GATED_TASK,
        link="/analyze/pitching?sport={sport}",
        module_gate="pitching",
        completion_marker="video",
    ),
    SystemTask(
        task_id="tex-vision",
        title="gamePlan.texVision.title",
        description="gamePlan.texVision.description",
        category=PlanCategory.MODULE_GATED_TASK,
        link="/analyze/hitting?sport={sport}&tab=tex-vision",
        module_gate="hitting",
        recommended_days=(1, 3, 5),
    ),
    SystemTask(
        task_id="arm-care",
        title="gamePlan.armCare.title",
        description="gamePlan.armCare.description",
        category=PlanCategory.MODULE_GATED_TASK,
        link="/analyze/pitching?sport={sport}&tab=arm-care",
        module_gate="pitching",
        recommended_days=(2, 4, 6),
    ),
    SystemTask(
        task_id="long-toss",
        title="gamePlan.longToss.title",
        description="gamePlan.longToss.description",
        category=PlanCategory.MODULE_GATED_TASK,
        link="/analyze/throwing?sport={sport}",
        module_gate="throwing",
        recommended_days=(1, 4),
    ),
)

PROGRAMS: tuple[ProgramDefinition, ...] = (
    ProgramDefinition(
        task_id="workout-hitting",
        title="Iron Bambino",
        sub_module="iron-bambino",
        module_gate="hitting",
        recommended_days=(1, 3, 5),
        link="/analyze/hitting?sport={sport}&tab=iron-bambino",
    ),
    ProgramDefinition(
        task_id="workout-pitching",
        title="Heat Factory",
        sub_module="heat-factory",
        module_gate="pitching",
        recommended_days=(2, 4, 6),
        link="/analyze/pitching?sport={sport}&tab=heat-factory",
    ),
)

SYSTEM_TASKS_BY_ID: dict[str, SystemTask] = {task.task_id: task for task in DEFAULT_DAILY_TASKS + MODULE_GATED_TASKS}
PROGRAMS_BY_SUB_MODULE: dict[str, ProgramDefinition] = {program.sub_module: program for program in PROGRAMS}
