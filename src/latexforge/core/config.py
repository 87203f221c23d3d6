"""Configuration models for the LaTeX build.

BuildSettings

`source_dir` (`Path`)
: Root of the LaTeX sources. Output files mirror their location relative to
  this directory.

`processing_dir` (`Path`)
: Directory, relative to `source_dir`, scanned for graphic sources and main
  documents.

`output_dir` (`Path`)
: Directory receiving the delivered artifacts. Relative values are resolved
  against the current working directory.

`diff_dir` (`Path | None`)
: Directory holding reference artifacts compared against the delivered ones
  when `check_diff` is enabled.

`read_recursive` (`bool`)
: Scan subdirectories of `processing_dir` as well.

`targets` (`str`)
: Comma-separated targets built by default, among `chk`, `dvi`, `pdf`,
  `html`, `odt`, `docx`, `rtf` and `txt`.

`doc_classes_to_targets` (`str`)
: Whitespace-separated chunks `class1,class2:target1,target2` restricting the
  targets built for documents of the listed classes.

`main_files_included` / `main_files_excluded` (`list[str]`)
: Base names of the main documents to build, or to skip.

`tex_path` (`Path | None`)
: Directory holding the TeX executables. `None` relies on `PATH`.

`clean_up` (`bool`)
: Delete every file created during the build once artifacts are delivered.

`create_bounding_boxes` (`bool`)
: Run `ebb` on JPEG and PNG images.

`debug_bad_boxes` / `debug_warnings` (`bool`)
: Warn about bad boxes or warnings in the final LaTeX run.

`pdf_via_dvi` (`bool`)
: Produce PDF through DVI and `dvipdfmx` rather than directly.

`max_reruns` (`int`)
: Upper bound for log-driven LaTeX reruns, `-1` for no bound.

`tools` (`ToolsConfig`)
: Command, options and log patterns of every external tool.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
import re
import string
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
import yaml

from .exceptions import SettingsError


PATTERN_LATEX_MAIN = (
    r"\A(%! LMP( docClass=(?P<doc_class_magic>[^} ]+))?"
    r"( targets=(?P<targets_magic>([a-z]|,)+))?(?:\r\n|\n|\r))?"
    r"(\\RequirePackage\s*(\[(\s|\w|,)*\])?\s*\{(\w|-)+\}\s*(\[(\d|\.)+\])?|"
    r"%.*$|"
    r"\\PassOptionsToPackage\s*\{\w+\}\s*\{(\w|-)+\}|"
    r"\\input\s*\{[^{}]*\}|"
    r"\s)*"
    r"\\(documentstyle|documentclass)\s*(\[[^]]*\])?\s*\{(?P<doc_class>[^} ]+)\}"
)

PATTERN_CREATED_FROM_MAIN = (
    r"^(T$T(\.([^.]*|synctex(\(busy\))?(\.gz)?|out\.ps|run\.xml|\d+\.vrb|depytx(\.tex)?)|"
    r"(-|ch|se|su|ap|li)?\d+\.x?html?|"
    r"\d+x\.x?bb|\d+x?\.png|-\d+\.svg|"
    r"-.+\.(idx|ind|ilg))|"
    r"pythontex-files-T$T|"
    r"zzT$T\.e?ps|"
    r"(cmsy)\d+(-c)?-\d+c?\.png|"
    r"(pdf|xe|lua)?latex\d+\.fls|"
    r"texput\.(fls|log))$"
)

PATTERN_T4HT_OUTPUT_FILES = (
    r"^(T$T(((ch|se|su|ap|li)?\d+)?\.x?html?|\.css|\d+x\.x?bb|\d+x\.png|-\d+\.svg)|"
    r"(cmsy)\d+(-c)?-\d+c?\.png)$"
)

PATTERN_WARN_LATEX = (
    r"^(LaTeX Warning: |LaTeX Font Warning: |(Package|Class) .+ Warning: |"
    r"pdfTeX warning( \((\d|\w)+\))?: |\* fontspec warning: |"
    r"Missing character: There is no .* in font .*!$|"
    r"A space is missing\. (No warning)\.)"
)

PATTERN_RERUN_LATEX = (
    r"^(LaTeX Warning: Label\(s\) may have changed\. Rerun to get cross-references right\.$|"
    r"Package \w+ Warning: .*Rerun .*$|"
    r"Package \w+ Warning: .*$^\(\w+\) .*Rerun .*$|"
    r"LaTeX Warning: Etaremune labels have changed\.$|"
    r"\(rerunfilecheck\)                Rerun to get outlines right$)"
)

PATTERN_RERUN_MAKEINDEX = r"^\(rerunfilecheck\) +Rerun LaTeX/makeindex to get index right\.$"


def _validate_pattern(value: str | None) -> str | None:
    if value is None:
        return None
    try:
        re.compile(value.replace("T$T", "x"), re.MULTILINE)
    except re.error as exc:
        raise ValueError(f"invalid regular expression {value!r}: {exc}") from exc
    return value


class ToolSettings(BaseModel):
    """Command line and log patterns of one external tool."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    command: str
    options: str = ""
    pattern_error: str | None = None
    pattern_warning: str | None = None
    pattern_rerun: str | None = None

    @field_validator("pattern_error", "pattern_warning", "pattern_rerun")
    @classmethod
    def _check_pattern(cls, value: str | None) -> str | None:
        return _validate_pattern(value)


class Fig2DevSettings(ToolSettings):
    """``fig2dev`` takes distinct options for the graphic and the overlay."""

    ptx_options: str = ""
    pdf_eps_options: str = ""


class Tex4htSettings(ToolSettings):
    """``htlatex`` takes positional option strings."""

    sty_options: str = "html,2"
    t4ht_options: str = ""


def _tool(command: str, options: str = "", **patterns: str) -> Any:
    return Field(default_factory=lambda: ToolSettings(command=command, options=options, **patterns))


class ToolsConfig(BaseModel):
    """Every external tool the build may invoke."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    latex: ToolSettings = _tool(
        "lualatex",
        "-interaction=nonstopmode -synctex=1 -recorder -shell-escape",
        pattern_error=r"(^! )",
        pattern_warning=PATTERN_WARN_LATEX,
        pattern_rerun=PATTERN_RERUN_LATEX,
    )
    bibtex: ToolSettings = _tool(
        "bibtex", pattern_error="error message", pattern_warning=r"^Warning--"
    )
    makeindex: ToolSettings = _tool(
        "makeindex",
        pattern_error=r"(!! Input index error )",
        pattern_warning=r"(## Warning )",
        pattern_rerun=PATTERN_RERUN_MAKEINDEX,
    )
    splitindex: ToolSettings = _tool("splitindex", "-V")
    makeglossaries: ToolSettings = _tool(
        "makeglossaries", pattern_error=r"^\*\*\* unable to execute: "
    )
    xindy: ToolSettings = _tool(
        "xindy", pattern_error=r"(^ERROR: )", pattern_warning=r"(^WARNING: )"
    )
    fig2dev: Fig2DevSettings = Field(default_factory=lambda: Fig2DevSettings(command="fig2dev"))
    gnuplot: ToolSettings = _tool("gnuplot")
    metapost: ToolSettings = _tool(
        "mpost",
        '-interaction=nonstopmode -recorder -s prologues=2 -s outputtemplate="%j.mps"',
        pattern_error=r"(^! )",
        pattern_warning=r"^([Ww]arning: )",
    )
    inkscape: ToolSettings = _tool("inkscape", "--export-area-drawing --export-latex")
    ebb: ToolSettings = _tool("ebb", "-v")
    dvi2pdf: ToolSettings = _tool("dvipdfmx", "-V1.7")
    tex4ht: Tex4htSettings = Field(default_factory=lambda: Tex4htSettings(command="htlatex"))
    latex2rtf: ToolSettings = _tool("latex2rtf")
    odt2doc: ToolSettings = _tool("odt2doc", "-fdocx")
    pdf2txt: ToolSettings = _tool("pdftotext", "-q")
    chktex: ToolSettings = _tool("chktex", "-q -b0")
    diff: ToolSettings = _tool("diff")

    @model_validator(mode="before")
    @classmethod
    def _merge_defaults(cls, data: Any) -> Any:
        # Partial tool entries override single fields of the defaults.
        if not isinstance(data, dict):
            return data
        merged = dict(data)
        for name, value in data.items():
            field = cls.model_fields.get(name)
            if field is None or not isinstance(value, dict):
                continue
            default = field.get_default(call_default_factory=True)
            merged[name] = {**default.model_dump(), **value}
        return merged


class BuildSettings(BaseModel):
    """Settings of one build pass; read-only while the build runs."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    source_dir: Path = Path(".")
    processing_dir: Path = Path(".")
    output_dir: Path = Path("build")
    diff_dir: Path | None = None
    read_recursive: bool = True
    targets: str = "chk,pdf,html"
    pattern_latex_main: str = PATTERN_LATEX_MAIN
    doc_classes_to_targets: str = (
        "article,book:chk,dvi,pdf,html,odt,docx,rtf,txt beamer:chk,pdf,txt"
    )
    main_files_included: list[str] = Field(default_factory=list)
    main_files_excluded: list[str] = Field(default_factory=list)
    tex_path: Path | None = None
    check_diff: bool = False
    clean_up: bool = True
    pattern_created_from_main: str = PATTERN_CREATED_FROM_MAIN
    pattern_t4ht_output_files: str = PATTERN_T4HT_OUTPUT_FILES
    create_bounding_boxes: bool = False
    debug_bad_boxes: bool = True
    debug_warnings: bool = True
    pdf_via_dvi: bool = False
    max_reruns: int = Field(default=5, ge=-1)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)

    @field_validator("main_files_included", "main_files_excluded", mode="before")
    @classmethod
    def _split_names(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.split()
        return value

    @field_validator(
        "pattern_latex_main", "pattern_created_from_main", "pattern_t4ht_output_files"
    )
    @classmethod
    def _check_pattern(cls, value: str) -> str:
        return _validate_pattern(value) or value

    @model_validator(mode="after")
    def _check_targets(self) -> BuildSettings:
        from .targets import parse_doc_classes_to_targets, parse_targets

        try:
            parse_targets(self.targets)
            parse_doc_classes_to_targets(self.doc_classes_to_targets)
        except SettingsError as exc:
            raise ValueError(str(exc)) from exc
        if self.check_diff and self.diff_dir is None:
            raise ValueError("check_diff requires diff_dir")
        return self

    @property
    def processing_root(self) -> Path:
        return self.source_dir / self.processing_dir


def load_settings(path: Path | None = None, **overrides: Any) -> BuildSettings:
    """Load settings from a YAML file, applying keyword overrides on top."""
    data: dict[str, Any] = {}
    if path is not None:
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise SettingsError(f"Cannot read settings file '{path}'.") from exc
        except yaml.YAMLError as exc:
            raise SettingsError(f"Settings file '{path}' is not valid YAML: {exc}") from exc
        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise SettingsError(f"Settings file '{path}' must contain a mapping.")
        data.update(raw)
    data.update({key: value for key, value in overrides.items() if value is not None})
    try:
        return BuildSettings.model_validate(data)
    except ValidationError as exc:
        source = f" in '{path}'" if path is not None else ""
        raise SettingsError(f"Invalid settings{source}:\n{exc}") from exc


def _tool_accessors(name: str) -> list[tuple[str, Callable[[BuildSettings], object]]]:
    def field_of(attribute: str) -> Callable[[BuildSettings], object]:
        return lambda settings: getattr(getattr(settings.tools, name), attribute)

    return [
        (f"{name}_command", field_of("command")),
        (f"{name}_options", field_of("options")),
    ]


SETTING_ACCESSORS: tuple[tuple[str, Callable[[BuildSettings], object]], ...] = (
    ("source_dir", lambda s: s.source_dir),
    ("processing_dir", lambda s: s.processing_dir),
    ("output_dir", lambda s: s.output_dir),
    ("diff_dir", lambda s: s.diff_dir),
    ("read_recursive", lambda s: s.read_recursive),
    ("targets", lambda s: s.targets),
    ("doc_classes_to_targets", lambda s: s.doc_classes_to_targets),
    ("main_files_included", lambda s: " ".join(s.main_files_included)),
    ("main_files_excluded", lambda s: " ".join(s.main_files_excluded)),
    ("tex_path", lambda s: s.tex_path),
    ("check_diff", lambda s: s.check_diff),
    ("clean_up", lambda s: s.clean_up),
    ("create_bounding_boxes", lambda s: s.create_bounding_boxes),
    ("debug_bad_boxes", lambda s: s.debug_bad_boxes),
    ("debug_warnings", lambda s: s.debug_warnings),
    ("pdf_via_dvi", lambda s: s.pdf_via_dvi),
    ("max_reruns", lambda s: s.max_reruns),
    ("fig2dev_ptx_options", lambda s: s.tools.fig2dev.ptx_options),
    ("fig2dev_pdf_eps_options", lambda s: s.tools.fig2dev.pdf_eps_options),
    ("tex4ht_sty_options", lambda s: s.tools.tex4ht.sty_options),
    ("t4ht_options", lambda s: s.tools.tex4ht.t4ht_options),
    *(
        pair
        for tool in (
            "latex",
            "bibtex",
            "makeindex",
            "splitindex",
            "makeglossaries",
            "fig2dev",
            "gnuplot",
            "metapost",
            "inkscape",
            "ebb",
            "dvi2pdf",
            "tex4ht",
            "latex2rtf",
            "odt2doc",
            "pdf2txt",
            "chktex",
            "diff",
        )
        for pair in _tool_accessors(tool)
    ),
)


def _render_value(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def describe_settings(settings: BuildSettings) -> list[tuple[str, str]]:
    """Return ``(name, value)`` pairs for every exposed setting."""
    return [(name, _render_value(accessor(settings))) for name, accessor in SETTING_ACCESSORS]


def render_settings_template(text: str, settings: BuildSettings) -> str:
    """Substitute ``${name}`` placeholders with setting values.

    Unknown placeholders are left untouched.
    """
    values = dict(describe_settings(settings))
    return string.Template(text).safe_substitute(values)


__all__ = [
    "PATTERN_CREATED_FROM_MAIN",
    "PATTERN_LATEX_MAIN",
    "PATTERN_RERUN_LATEX",
    "PATTERN_RERUN_MAKEINDEX",
    "PATTERN_T4HT_OUTPUT_FILES",
    "PATTERN_WARN_LATEX",
    "SETTING_ACCESSORS",
    "BuildSettings",
    "Fig2DevSettings",
    "Tex4htSettings",
    "ToolSettings",
    "ToolsConfig",
    "describe_settings",
    "load_settings",
    "render_settings_template",
]
