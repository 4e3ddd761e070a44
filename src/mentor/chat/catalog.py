"""Default tool catalog bound to the knowledge base and platform data."""

from __future__ import annotations

from pydantic import Field

from mentor.chat.tools import Tool, ToolArgs, ToolContext, ToolRegistry
from mentor.db.platform import PlatformData
from mentor.ingest.knowledge import KnowledgeStore
from mentor.rag.retriever import Retriever

_STAFF_ROLES = frozenset(["lecturer", "admin"])


class AddResourceArgs(ToolArgs):
    content: str = Field(description="the content or resource to add to the knowledge base")


class GetInformationArgs(ToolArgs):
    question: str = Field(description="the users question")


class AverageGradeArgs(ToolArgs):
    userId: str | None = Field(
        default=None, description="id of another user; omit for the current user"
    )


def build_default_registry(
    knowledge: KnowledgeStore,
    retriever: Retriever,
    platform: PlatformData,
) -> ToolRegistry:
    """Return the assistant's ten-tool catalog.

    Tools that concern "the current user" are scoped to ``ToolContext.caller_id``.
    """

    def add_resource(args: dict, ctx: ToolContext) -> dict:
        resource = knowledge.ingest(args["content"])
        return {
            "id": resource.id,
            "chunks": knowledge.count_chunks(resource.id),
            "message": "Resource successfully created and embedded.",
        }

    def get_information(args: dict, ctx: ToolContext) -> list[dict]:
        return [c.to_dict() for c in retriever.find_relevant(args["question"])]

    def get_user_profile(args: dict, ctx: ToolContext) -> dict | None:
        return platform.get_user_profile(ctx.caller_id)

    def get_user_courses(args: dict, ctx: ToolContext) -> list[dict]:
        return platform.list_user_courses(ctx.caller_id)

    def get_all_courses(args: dict, ctx: ToolContext) -> list[dict]:
        return platform.list_all_courses(ctx.caller_id)

    def get_user_assignments(args: dict, ctx: ToolContext) -> list[dict]:
        return platform.list_user_assignments(ctx.caller_id)

    def get_all_lecturers(args: dict, ctx: ToolContext) -> list[dict]:
        return platform.list_lecturers()

    def get_average_grade(args: dict, ctx: ToolContext) -> dict:
        target = args.get("userId") or ctx.caller_id
        if target != ctx.caller_id and ctx.role not in _STAFF_ROLES:
            raise PermissionError("Only lecturers and admins can view another user's grades.")
        return platform.average_grade(target)

    def get_course_grades(args: dict, ctx: ToolContext) -> list[dict]:
        return platform.grades_by_course(ctx.caller_id)

    def get_all_knowledge(args: dict, ctx: ToolContext) -> list[dict]:
        return [r.to_dict() for r in knowledge.all_resources()]

    return ToolRegistry(
        [
            Tool(
                name="addResource",
                description=(
                    "Add a resource to the knowledge base. If the user prompts about "
                    "something useful, use this tool without asking for confirmation."
                ),
                args_model=AddResourceArgs,
                execute=add_resource,
                trigger="something worth remembering for later",
            ),
            Tool(
                name="getInformation",
                description="Get information from the knowledge base to answer general questions.",
                args_model=GetInformationArgs,
                execute=get_information,
                trigger="general knowledge, platform policies or previously saved information",
            ),
            Tool(
                name="getUserProfile",
                description="Get the profile information for the current user.",
                execute=get_user_profile,
                trigger="their profile or personal info",
            ),
            Tool(
                name="getUserCourses",
                description="Get information about the courses the user is enrolled in.",
                execute=get_user_courses,
                trigger='their courses (e.g. "What courses am I enrolled in?")',
            ),
            Tool(
                name="getAllCourses",
                description="Get all courses available on the platform.",
                execute=get_all_courses,
                trigger='courses on the platform (e.g. "How many courses are on the platform?")',
            ),
            Tool(
                name="getUserAssignments",
                description="Get information about the assignments for the user.",
                execute=get_user_assignments,
                trigger='their assignments or deadlines (e.g. "When are my assignments due?")',
            ),
            Tool(
                name="getAllLecturers",
                description="Get all lecturers on the platform.",
                execute=get_all_lecturers,
                trigger="lecturers or who teaches on the platform",
            ),
            Tool(
                name="getAverageGrade",
                description=(
                    "Get the average grade of the current user, or of another user "
                    "when a userId is given."
                ),
                args_model=AverageGradeArgs,
                execute=get_average_grade,
                trigger="their average or overall grade",
            ),
            Tool(
                name="getCourseGrades",
                description="Get the current user's average grade in each course.",
                execute=get_course_grades,
                trigger="grades per course or how they are doing in a course",
            ),
            Tool(
                name="getAllKnowledge",
                description="Get all resources in the knowledge base.",
                execute=get_all_knowledge,
                trigger="what is stored in the knowledge base",
            ),
        ]
    )
