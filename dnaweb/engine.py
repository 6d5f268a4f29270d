"""The directive processor shared by every engine.

A source file goes through four phases, always in this order:

1. output discovery: ``partial`` and ``output`` tags decide what gets written
2. main tags: ``include`` and ``inline`` are expanded, once per output
3. data tags: ``<!--$ ... $-->`` blocks declare the variables of each output
4. variables: ``$$name$$`` tokens are replaced with their values

Then each output is saved and every file that includes the processed file is
run through the same steps, so editing a partial regenerates its users.
"""
import os
from typing import List, Optional

from .config import local_configuration
from .data import Cascade, OutputTarget, ProcessResult, SourceFile
from .errors import (CircularReferenceError, DnaWebError, MalformedTagError, MissingIncludeError,
                     UnknownDirectiveError)
from .files import file_exists, get_directory_files, read_all_text, read_all_text_async, save_file
from .logger import LogType
from .outputs import default_output_path, parse_output_argument, profile_applies, resolve_output_path
from .references import IncludeTracker, same_path
from .tags import DATA_TAG, DIRECTIVE_TAG, find_tag, replace_tag, split_inline, split_profile, tag_parts
from .variables import extract_data, substitute


def normalize_path(path: str) -> str:
    return os.path.normpath(os.path.abspath(path))


class BaseEngine:
    name = "Base"
    extensions: List[str] = []
    output_extension: Optional[str] = ".dna"

    def __init__(self, environment, custom_monitor_path: Optional[str] = None):
        self.environment = environment
        self.custom_monitor_path = custom_monitor_path

        self.will_read_file_into_memory = True
        self.will_process_output_tags = True
        self.will_process_main_tags = True
        self.will_process_data_tags = True
        self.will_process_variables = True

        self.tracker = IncludeTracker(self)
        self.processing = False

        self.last_generated_files: List[str] = []
        self.last_processed_files: List[str] = []
        self.last_results: List[ProcessResult] = []

    @property
    def logger(self):
        return self.environment.logger

    @property
    def monitor_path(self) -> str:
        return normalize_path(self.custom_monitor_path or self.environment.configuration.monitor_path)

    @property
    def process_delay(self) -> int:
        return self.environment.configuration.process_delay

    def log(self, title: str, message: str = "", type: LogType = LogType.DIAGNOSTIC) -> None:
        self.logger.log(title, message, type=type)

    def monitored_files(self) -> List[str]:
        return get_directory_files(self.monitor_path, self.extensions)

    # Hooks for engines, all no-ops here

    async def pre_process_file(self, source: SourceFile) -> None:
        pass

    async def post_process_output_paths(self, source: SourceFile) -> None:
        pass

    async def post_process_file(self, source: SourceFile) -> None:
        pass

    async def pre_generate_file(self, source: SourceFile, output: OutputTarget) -> None:
        pass

    async def post_generate_file(self, source: SourceFile, output: OutputTarget) -> None:
        pass

    async def post_save_file(self, source: SourceFile, output: OutputTarget) -> None:
        pass

    async def process_file_deleted(self, path: str) -> None:
        pass

    # Phase 1

    def process_output_tags(self, source: SourceFile) -> None:
        """Find the outputs of a file and whether it is a partial.

        Tags are stripped from a scratch copy only; every output starts again
        from the untouched contents in the main tag phase.
        """
        contents = source.contents
        first_match = True

        while match := find_tag(contents, DIRECTIVE_TAG):
            keyword, argument = tag_parts(match)

            # A later partial tag may come from an include, so only the first counts
            if keyword == "partial":
                if first_match:
                    source.partial = True
            elif keyword == "output":
                self.process_output_tag(source, argument, match)

            contents = replace_tag(contents, match, "")
            first_match = False

        if not source.partial and not source.outputs:
            source.outputs.append(OutputTarget(path=self.default_output_path(source)))

        for output in source.outputs:
            output.contents = source.contents

    def process_output_tag(self, source: SourceFile, argument: str, match) -> None:
        if not argument.strip():
            raise MalformedTagError(f"Malformed match {match.group(0)}")

        path, profile = parse_output_argument(argument)
        source.outputs.append(OutputTarget(
            path=resolve_output_path(path, self.output_folder(source), self.output_extension),
            profile=profile or None,
        ))

    def output_folder(self, source: SourceFile) -> str:
        if source.configuration is not None and source.configuration.output_path:
            return source.configuration.output_path
        return os.path.dirname(source.path)

    def default_output_path(self, source: SourceFile) -> str:
        return default_output_path(source.path, self.output_folder(source), self.output_extension)

    # Phase 2

    def process_main_tags(self, source: SourceFile) -> None:
        for output in source.outputs:
            # Lower-cased include paths already expanded into this output
            includes: List[str] = []

            while match := find_tag(output.contents, DIRECTIVE_TAG):
                keyword, argument = tag_parts(match)

                if keyword in ("partial", "output"):
                    output.contents = replace_tag(output.contents, match, "")
                elif keyword == "inline":
                    output.contents = self.process_inline_tag(output, argument, match)
                elif keyword == "include":
                    output.contents = self.process_include_tag(source, output, argument, match, includes)
                else:
                    raise UnknownDirectiveError(f"Unknown match {match.group(0)}")

    def process_inline_tag(self, output: OutputTarget, argument: str, match) -> str:
        if not argument:
            raise MalformedTagError(f"Malformed match {match.group(0)}")

        content, profile = split_inline(argument)
        if profile_applies(profile, output.profile):
            return replace_tag(output.contents, match, content, remove_newline=False)
        return replace_tag(output.contents, match, "")

    def process_include_tag(self, source: SourceFile, output: OutputTarget, argument: str, match,
                            includes: List[str]) -> str:
        if not argument.strip():
            raise MalformedTagError(f"Malformed match {match.group(0)}")

        include_path, profile = split_profile(argument.strip())
        if not profile_applies(profile, output.profile):
            return replace_tag(output.contents, match, "")

        key = include_path.strip().lower()
        if key in includes:
            raise CircularReferenceError(f"Circular reference detected {include_path}")

        resolved = self.find_include_file(source.path, include_path.strip())
        if resolved is not None and same_path(resolved, source.path):
            raise CircularReferenceError(f"Circular reference detected {resolved}")
        if resolved is None:
            raise MissingIncludeError(f"Include file not found {include_path}")

        includes.append(key)
        return replace_tag(output.contents, match, read_all_text(resolved), remove_newline=False)

    def find_include_file(self, path: str, include_path: str) -> Optional[str]:
        """Look for an included file next to the including one.

        Tries the name as written, then with a leading underscore (partials
        are often named _header), then both again with each known extension.
        """
        candidate = os.path.normpath(os.path.join(os.path.dirname(path), include_path))
        candidates = [candidate, underscored(candidate)]
        for extension in self.environment.all_extensions():
            if extension in ("*", ".*", "*.*"):
                continue
            candidates += [candidate + extension, underscored(candidate + extension)]

        for candidate in candidates:
            if candidate and file_exists(candidate):
                return candidate
        return None

    # Phase 3

    def process_data_tags(self, source: SourceFile) -> None:
        for output in source.outputs:
            while match := find_tag(output.contents, DATA_TAG):
                extract_data(match.group(1), output.variables)
                output.contents = replace_tag(output.contents, match, "")

    # Phase 4

    def generate_output(self, source: SourceFile, output: OutputTarget) -> None:
        if not self.will_process_variables:
            output.compiled = output.contents
            return

        try:
            output.compiled = substitute(output.contents, output.variables, output.profile, source.path)
        except DnaWebError:
            # Never leave a half substituted output around to be saved
            output.compiled = None
            raise

    async def save_file_contents(self, source: SourceFile, output: OutputTarget) -> None:
        save_file(output.compiled, output.path)

    # Cascade

    async def run_phases(self, source: SourceFile) -> None:
        await self.pre_process_file(source)

        if self.will_process_output_tags:
            self.process_output_tags(source)

        await self.post_process_output_paths(source)

        if self.will_process_main_tags:
            self.process_main_tags(source)

        if self.will_process_data_tags:
            self.process_data_tags(source)

        await self.post_process_file(source)

    async def process_file(self, path: str, cascade: Cascade, depth: int = 0) -> ProcessResult:
        prefix = log_prefix(depth)
        path = normalize_path(path)

        source = SourceFile(
            path=path,
            configuration=local_configuration(path, self.environment.configuration,
                                              cascade.configurations, self.logger),
        )

        if not file_exists(path):
            return ProcessResult(path=path, success=False, error="File no longer exists")

        if self.will_read_file_into_memory:
            source.contents = await read_all_text_async(path)

        if cascade.was_processed(path):
            self.log(f"{prefix}Skipping already processed file {path}", type=LogType.WARNING)
            return ProcessResult(path=path, skipped_processing=True)

        self.log(f"{prefix}Processing file {path}...", type=LogType.INFORMATION)

        try:
            await self.run_phases(source)
        except DnaWebError as e:
            return ProcessResult(path=path, success=False, error=str(e))

        cascade.processed_files.append(path)

        if not source.partial:
            for output in source.outputs:
                await self.generate_file(source, output, cascade, prefix)
        else:
            self.log(f"{prefix}Partial file edit {path}...")

        self.log(f"{prefix}Updating referenced files to {path}...")

        referencers: List[str] = []
        try:
            referencers = self.tracker.find_referencers(path)
        except CircularReferenceError as e:
            source.error = append_error(source.error, str(e))

        if not source.successful:
            return ProcessResult(path=path, success=False, error=source.error)

        for reference in referencers:
            result = await self.process_file_changed(reference, cascade, depth + 1)
            if not result.success:
                return result

        self.log(f"{prefix}Successfully processed file {path}", type=LogType.ATTENTION)
        return ProcessResult(path=path, success=source.successful, error=source.error,
                             generated_files=list(cascade.generated_files))

    async def generate_file(self, source: SourceFile, output: OutputTarget, cascade: Cascade, prefix: str) -> None:
        await self.pre_generate_file(source, output)

        if cascade.was_generated(output.path):
            self.log(f"{prefix}Skipping already generated file {output.path}", type=LogType.WARNING)
            return

        try:
            self.generate_output(source, output)
        except DnaWebError as e:
            source.error = append_error(source.error, str(e))
            return

        await self.post_generate_file(source, output)

        try:
            await self.save_file_contents(source, output)
            await self.post_save_file(source, output)
        except OSError as e:
            source.error = append_error(source.error, f"Error saving generated file {output.path}. {e}.")
            return

        cascade.generated_files.append(output.path)
        self.log(f"{prefix}Generated file {output.path}", type=LogType.SUCCESS)

    async def process_file_changed(self, path: str, cascade: Cascade, depth: int = 0) -> ProcessResult:
        """Process one file of a cascade, turning any failure into a failed result"""
        prefix = log_prefix(depth)
        try:
            result = await self.process_file(path, cascade, depth)

            # Failures of referencing files were logged further down already
            if not result.success and same_path(result.path, path):
                self.log(f"{prefix}Failed to process file {path}", result.error, type=LogType.ERROR)
            return result
        except Exception as e:
            self.log(f"{prefix}Unexpected fail to process file {path}", str(e), type=LogType.ERROR)
            return ProcessResult(path=path, success=False, error=str(e))

    async def process_all_file_changes(self, paths: List[str]) -> List[ProcessResult]:
        """Run one batch: rebuild the include map, then cascade from every path.

        Batches of every engine share the environment lock, so only one runs
        at a time and late notifications queue up behind the current one.
        """
        self.processing = True
        results: List[ProcessResult] = []
        try:
            async with self.environment.lock:
                if self.environment.disable_watching:
                    return results

                self.logger.information("====================================")
                self.logger.information(f"  {self.name} Engine Processing {len(paths)} File Changes")
                self.logger.information("")

                self.tracker.rebuild_all()

                cascade = Cascade()
                for path in paths:
                    if cascade.was_generated(path):
                        continue
                    result = await self.process_file_changed(path, cascade)
                    cascade.results.append(result)

                self.last_generated_files = list(cascade.generated_files)
                self.last_processed_files = list(cascade.processed_files)
                self.last_results = list(cascade.results)
                results = self.last_results
        finally:
            self.logger.information("")
            self.logger.information(f"  {self.name} Engine Process Done")
            self.logger.information("====================================")
            self.logger.information("")

            self.processing = False
            self.environment.report_when_idle()

        return results

    async def startup_generation(self) -> List[ProcessResult]:
        """Process every monitored file as one batch"""
        try:
            return await self.process_all_file_changes(self.monitored_files())
        finally:
            self.processing = False

    def output_generation_report(self) -> None:
        self.logger.information(f"  {self.name} Generation Report - {len(self.last_generated_files)} generated files, "
                                f"{len(self.last_processed_files)} processed files")

        failed = [result for result in self.last_results if not result.success]
        if failed:
            self.logger.information("")
            self.logger.error(f"{len(failed)} files failed to process")
            for result in failed:
                self.logger.error("")
                self.logger.log_tabbed(result.path, "", 1, type=LogType.ERROR)
                self.logger.log_tabbed(result.error, "", 1, type=LogType.ERROR)

        self.logger.information("")


def underscored(path: str) -> Optional[str]:
    folder, name = os.path.split(path)
    if not name or name.startswith("_"):
        return None
    return os.path.join(folder, "_" + name)


def append_error(error: str, message: str) -> str:
    return f"{error}\n{message}" if error else message


def log_prefix(depth: int) -> str:
    return f"{' ' * (depth * 2)}> " if depth > 0 else ""
