from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, EmailStr, Field, StringConstraints, field_validator
from datetime import date, datetime
from typing import Annotated, Optional, List
from enum import Enum


class MemberRole(str, Enum):
    member = "member"
    admin = "admin"


class ListRole(str, Enum):
    """Effective role of a principal over one list."""
    owner = "owner"
    admin = "admin"
    member = "member"
    none = "none"


class TaskPriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


PersonName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=100)]
Password = Annotated[str, StringConstraints(min_length=6, max_length=128)]
SecurityText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
ListName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]
TaskTitle = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]
TaskDescription = Annotated[str, StringConstraints(strip_whitespace=True, max_length=1000)]

MAX_TAG_LENGTH = 50


def _normalize_email(value):
    if isinstance(value, str):
        return value.strip().lower()
    return value


def _check_tag_lengths(names: Optional[List[str]]) -> Optional[List[str]]:
    if names is None:
        return names
    for name in names:
        # Measured as stored; lower-casing can lengthen some characters
        if len(name.strip().lower()) > MAX_TAG_LENGTH:
            raise ValueError(f"Tag names must be at most {MAX_TAG_LENGTH} characters")
    return names


# Emails are compared case-insensitively, so they are lower-cased before validation
NormalizedEmail = Annotated[EmailStr, BeforeValidator(_normalize_email)]
TagNames = Annotated[List[str], AfterValidator(_check_tag_lengths)]


# Principal
class Principal(BaseModel):
    """An authenticated identity making a request."""
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    name: str
    email: str


# User / auth schemas
class RegisterRequest(BaseModel):
    name: PersonName
    email: NormalizedEmail
    password: Password
    security_question: SecurityText
    security_answer: SecurityText


class LoginRequest(BaseModel):
    email: NormalizedEmail
    password: str = Field(..., min_length=1)


class ProfileUpdate(BaseModel):
    name: Optional[PersonName] = None
    security_question: Optional[SecurityText] = None
    security_answer: Optional[SecurityText] = None


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: Password


class SecurityQuestionRequest(BaseModel):
    email: NormalizedEmail


class ResetPasswordRequest(BaseModel):
    email: NormalizedEmail
    security_answer: SecurityText
    new_password: Password


class UserSummary(BaseModel):
    id: int
    name: str
    email: str

    class Config:
        from_attributes = True


class User(UserSummary):
    security_question: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    message: str
    access_token: str
    token_type: str = "bearer"
    user: User


class UserResponse(BaseModel):
    user: User


class UserMutationResponse(BaseModel):
    message: str
    user: User


class SecurityQuestionResponse(BaseModel):
    security_question: str


class MessageResponse(BaseModel):
    message: str


# Tag / subtask / task schemas
class Tag(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class SubtaskCreate(BaseModel):
    title: TaskTitle


class SubtaskUpdate(BaseModel):
    title: Optional[TaskTitle] = None
    completed: Optional[bool] = None

    @field_validator("title", "completed")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("Field cannot be null")
        return value


class Subtask(BaseModel):
    id: int
    task_id: int
    title: str
    completed: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TaskCreate(BaseModel):
    list_id: int = Field(..., ge=1)
    title: TaskTitle
    description: Optional[TaskDescription] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[date] = None
    tags: TagNames = []


class TaskUpdate(BaseModel):
    title: Optional[TaskTitle] = None
    description: Optional[TaskDescription] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[date] = None
    completed: Optional[bool] = None
    # None/absent leaves tags untouched; a list (even empty) replaces them
    tags: Optional[TagNames] = None

    @field_validator("title", "completed")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("Field cannot be null")
        return value


class Task(BaseModel):
    id: int
    list_id: int
    title: str
    description: Optional[str] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[date] = None
    completed: bool
    created_at: Optional[datetime] = None
    tags: List[Tag] = []

    class Config:
        from_attributes = True


class TaskWithSubtasks(Task):
    subtasks: List[Subtask] = []

    class Config:
        from_attributes = True


class TasksResponse(BaseModel):
    tasks: List[Task]


class TaskResponse(BaseModel):
    task: TaskWithSubtasks


class TaskMutationResponse(BaseModel):
    message: str
    task: TaskWithSubtasks


class SubtaskMutationResponse(BaseModel):
    message: str
    subtask: Subtask


class TagsResponse(BaseModel):
    tags: List[Tag]


# List schemas
class TodoListCreate(BaseModel):
    name: ListName


class TodoListUpdate(BaseModel):
    name: ListName


class TodoList(BaseModel):
    id: int
    name: str
    owner_id: int
    owner_name: Optional[str] = None
    user_role: ListRole
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TodoListWithTasks(TodoList):
    tasks: List[TaskWithSubtasks] = []

    class Config:
        from_attributes = True


class ListsResponse(BaseModel):
    lists: List[TodoList]


class ListResponse(BaseModel):
    list: TodoListWithTasks


class ListMutationResponse(BaseModel):
    message: str
    list: TodoList


# Membership schemas
class ListMemberCreate(BaseModel):
    email: NormalizedEmail
    role: MemberRole = MemberRole.member


class ListMemberUpdate(BaseModel):
    role: MemberRole


class OwnershipTransfer(BaseModel):
    email: NormalizedEmail


class ListMember(BaseModel):
    id: int
    name: str
    email: str
    role: ListRole
    joined_at: Optional[datetime] = None


class MembersResponse(BaseModel):
    members: List[ListMember]


class MemberMutationResponse(BaseModel):
    message: str
    member: ListMember


class OwnershipTransferResponse(BaseModel):
    message: str
    new_owner: UserSummary
    list: TodoList
