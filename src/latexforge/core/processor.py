"""Top-level build pipeline."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from .config import BuildSettings
from .convergence import ConvergenceEngine
from .diagnostics import DiagnosticEmitter, NullEmitter
from .documents import MainDocument
from .exceptions import ArtifactMismatchError, MissingDirectoryError, SettingsError
from .execution import CommandRunner, SubprocessRunner
from .files import copy_outputs, target_directory
from .preprocessor import GraphicPreprocessor, PreprocessReport
from .snapshot import build_snapshot, clean_up
from .targets import Target, normalise_targets, parse_doc_classes_to_targets, parse_targets


@dataclass(slots=True)
class BuildReport:
    """Documents built and files delivered by one build."""

    documents: list[MainDocument] = field(default_factory=list)
    delivered: dict[Path, list[Path]] = field(default_factory=dict)
    removed: list[Path] = field(default_factory=list)


class LatexBuilder:
    """Preprocess graphics, build main documents and deliver their artifacts."""

    def __init__(
        self,
        settings: BuildSettings | None = None,
        *,
        runner: CommandRunner | None = None,
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        self.settings = settings or BuildSettings()
        self.emitter = emitter or NullEmitter()
        self.runner = runner or SubprocessRunner(self.emitter)
        self.preprocessor = GraphicPreprocessor(self.settings, self.runner, self.emitter)
        self.engine = ConvergenceEngine(self.settings, self.runner, self.emitter)

    # -- directories ----------------------------------------------------

    def _directory(self, path: Path, role: str) -> Path:
        if not path.exists():
            raise MissingDirectoryError(f"The {role} directory '{path}' does not exist.")
        if not path.is_dir():
            raise MissingDirectoryError(f"The {role} directory '{path}' is not a directory.")
        return path

    @property
    def source_root(self) -> Path:
        return self._directory(self.settings.source_dir, "source")

    @property
    def processing_root(self) -> Path:
        self._directory(self.settings.source_dir, "source")
        return self._directory(self.settings.processing_root, "processing")

    # -- target selection -----------------------------------------------

    def targets_for(self, document: MainDocument, requested: Iterable[Target]) -> list[Target]:
        """Restrict ``requested`` to the targets ``document`` allows."""
        requested = list(requested)
        if document.magic_targets:
            try:
                allowed = parse_targets(document.magic_targets)
            except SettingsError as exc:
                self.emitter.warning(
                    f"Ignoring targets declared in '{document.tex_file}': {exc}"
                )
            else:
                return [target for target in requested if target in allowed]

        doc_class = document.effective_doc_class
        mapping = parse_doc_classes_to_targets(self.settings.doc_classes_to_targets)
        if doc_class is None or doc_class not in mapping:
            self.emitter.debug(
                f"No targets configured for document class {doc_class!r} of "
                f"'{document.tex_file}'; building all requested targets."
            )
            return requested
        allowed = mapping[doc_class]
        skipped = [target.value for target in requested if target not in allowed]
        if skipped:
            self.emitter.info(
                f"Skipping targets {skipped} for '{document.tex_file}' "
                f"of document class '{doc_class}'."
            )
        return [target for target in requested if target in allowed]

    # -- pipeline -------------------------------------------------------

    def preprocess_graphics(self) -> PreprocessReport:
        """Convert graphics without building or cleaning up."""
        return self.preprocessor.preprocess(self.processing_root)

    def clear_derived(self) -> None:
        """Delete the files derived from the sources of the processing directory."""
        self.preprocessor.clear_created(self.processing_root)

    def build(self, targets: Iterable[Target | str] | None = None) -> BuildReport:
        """Build every selected main document into ``targets``."""
        requested = (
            parse_targets(self.settings.targets) if targets is None else normalise_targets(targets)
        )
        source_root = self.source_root
        processing_root = self.processing_root
        output_root = self.settings.output_dir

        report = BuildReport()
        before = build_snapshot(processing_root, self.emitter)
        try:
            preprocessed = self.preprocessor.preprocess(processing_root, before)
            report.documents = preprocessed.main_documents
            for document in preprocessed.main_documents:
                destination = target_directory(document.tex_file, source_root, output_root)
                for target in self.targets_for(document, requested):
                    self.emitter.info(f"Building '{document.tex_file}' into {target.value}.")
                    target.process(self.engine, document)
                    delivered = copy_outputs(
                        document.tex_file,
                        target.output_pattern(self.settings),
                        destination,
                        self.emitter,
                    )
                    self.emitter.event(
                        "delivered", {"target": target.value, "count": len(delivered)}
                    )
                    report.delivered.setdefault(document.tex_file, []).extend(delivered)
                    if target.has_diff_tool and self.settings.check_diff:
                        self.check_against_reference(document, destination)
        finally:
            if self.settings.clean_up:
                report.removed = clean_up(
                    before, processing_root, self.emitter, keep=[output_root]
                )
        return report

    def check_against_reference(self, document: MainDocument, destination: Path) -> None:
        """Compare the delivered PDF with its reference copy under ``diff_dir``."""
        if self.settings.diff_dir is None:
            raise SettingsError("Comparing artifacts requires diff_dir.")
        produced = destination / document.pdf.name
        relative = destination.resolve().relative_to(self.settings.output_dir.resolve())
        reference = self.settings.diff_dir / relative / document.pdf.name
        if not reference.exists():
            raise ArtifactMismatchError(
                f"No reference file '{reference}' to compare '{produced}' with."
            )
        if self.engine.pdf_differs(produced, reference):
            raise ArtifactMismatchError(f"Artifact '{produced}' differs from '{reference}'.")
        self.emitter.info(f"Artifact '{produced}' coincides with '{reference}'.")


__all__ = ["BuildReport", "LatexBuilder"]
