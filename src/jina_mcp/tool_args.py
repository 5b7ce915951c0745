from __future__ import annotations

import json
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .tools.reader import ReadOptions
from .tools.search import SearchOptions

RetainMode = Literal["all", "none", "markdown"]


class ToolArgs(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=True)


def _split_list(value: object) -> object:
    # Some clients send "a, b" instead of ["a", "b"].
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return value


class PrimerArgs(ToolArgs):
    pass


class ReadUrlArgs(ToolArgs):
    url: str = Field(min_length=1)
    timeout: int | None = Field(default=None, gt=0)
    locale: str | None = None
    instruction: str | None = None
    target_selector: str | None = Field(default=None, alias="targetSelector")
    remove_selector: str | None = Field(default=None, alias="removeSelector")
    wait_for_selector: str | None = Field(default=None, alias="waitForSelector")
    retain_images: RetainMode | None = Field(default=None, alias="retainImages")
    retain_links: RetainMode | None = Field(default=None, alias="retainLinks")
    with_images_summary: bool = Field(default=False, alias="withImagesSummary")
    with_links_summary: bool = Field(default=False, alias="withLinksSummary")
    proxy: str | None = None
    user_agent: str | None = Field(default=None, alias="userAgent")
    json_schema: str | None = Field(default=None, alias="jsonSchema")

    def read_options(self) -> ReadOptions:
        return ReadOptions(
            timeout=self.timeout,
            locale=self.locale,
            instruction=self.instruction,
            target_selector=self.target_selector,
            remove_selector=self.remove_selector,
            wait_for_selector=self.wait_for_selector,
            retain_images=self.retain_images,
            retain_links=self.retain_links,
            with_images_summary=self.with_images_summary,
            with_links_summary=self.with_links_summary,
            proxy=self.proxy,
            user_agent=self.user_agent,
            json_schema=self.json_schema,
        )


class CaptureScreenshotArgs(ToolArgs):
    url: str = Field(min_length=1)
    full_page: bool = Field(default=False, alias="fullPage")


class GuessDatetimeArgs(ToolArgs):
    url: str = Field(min_length=1)


class ParallelReadArgs(ToolArgs):
    urls: list[str]
    max_parallel: int | None = Field(default=None, alias="maxParallel")
    timeout: int | None = Field(default=None, gt=0)
    locale: str | None = None
    instruction: str | None = None
    target_selector: str | None = Field(default=None, alias="targetSelector")
    retain_images: RetainMode | None = Field(default=None, alias="retainImages")
    retain_links: RetainMode | None = Field(default=None, alias="retainLinks")

    @field_validator("urls", mode="before")
    @classmethod
    def split_urls(cls, value: object) -> object:
        return _split_list(value)

    def read_options(self) -> ReadOptions:
        return ReadOptions(
            timeout=self.timeout,
            locale=self.locale,
            instruction=self.instruction,
            target_selector=self.target_selector,
            retain_images=self.retain_images,
            retain_links=self.retain_links,
        )


class SearchWebArgs(ToolArgs):
    query: str = Field(min_length=1)
    count: int | None = Field(default=None, gt=0)
    location: str | None = None
    language: str | None = None
    site: str | None = None
    page: int | None = Field(default=None, gt=0)
    filetype: str | None = None
    intitle: str | None = None
    timeout: int | None = Field(default=None, gt=0)
    provider: str | None = None

    def search_options(self) -> SearchOptions:
        return SearchOptions(
            count=self.count,
            location=self.location,
            language=self.language,
            site=self.site,
            page=self.page,
            filetype=self.filetype,
            intitle=self.intitle,
            timeout=self.timeout,
            provider=self.provider,
        )


class SearchArxivArgs(ToolArgs):
    query: str = Field(min_length=1)
    max_results: int = Field(default=10, gt=0, alias="maxResults")


class SearchImagesArgs(ToolArgs):
    query: str = Field(min_length=1)
    count: int = Field(default=20, gt=0)


class ParallelSearchArgs(ToolArgs):
    queries: list[str]
    max_parallel: int | None = Field(default=None, alias="maxParallel")

    @field_validator("queries", mode="before")
    @classmethod
    def split_queries(cls, value: object) -> object:
        return _split_list(value)


class ExpandQueryArgs(ToolArgs):
    query: str = ""


TOOL_ARGS: dict[str, type[ToolArgs]] = {
    "primer": PrimerArgs,
    "read_url": ReadUrlArgs,
    "capture_screenshot_url": CaptureScreenshotArgs,
    "guess_datetime_url": GuessDatetimeArgs,
    "parallel_read_url": ParallelReadArgs,
    "search_web": SearchWebArgs,
    "search_arxiv": SearchArxivArgs,
    "search_images": SearchImagesArgs,
    "parallel_search_web": ParallelSearchArgs,
    "expand_query": ExpandQueryArgs,
}


def parse_tool_args(name: str, arguments: object) -> tuple[ToolArgs | None, str | None]:
    model = TOOL_ARGS.get(name)
    if model is None:
        return None, f"unknown tool: {name}"
    if arguments is None:
        arguments = {}
    if not isinstance(arguments, dict):
        return None, "invalid tool arguments: expected object payload"
    try:
        return model.model_validate(arguments), None
    except ValidationError as exc:
        return None, _format_validation_error(exc)


def _format_validation_error(exc: ValidationError) -> str:
    problems = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err["loc"]) or "arguments"
        problems.append(f"{loc}: {err['msg']}")
    return "; ".join(problems)


def decode_args_text(args_text: str) -> tuple[dict[str, object], str | None]:
    """Decode a JSON (or YAML) argument string, e.g. from the command line."""
    if not args_text:
        return {}, None
    cleaned = args_text.strip()
    if cleaned.startswith("```") and cleaned.endswith("```"):
        cleaned = "\n".join(cleaned.splitlines()[1:-1]).strip()
    parsed: object
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        try:
            parsed = yaml.safe_load(cleaned)
        except yaml.YAMLError as exc:
            return {}, f"invalid tool arguments: {exc}"
    if isinstance(parsed, dict):
        return parsed, None
    return {}, "invalid tool arguments: expected object payload"
