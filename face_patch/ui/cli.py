"""
CLI Interface for Face Patch

Provides the command-line interface: argument parsing, validation and
either a headless run over a given box or the interactive viewer.
"""

import argparse
import sys
import os
import logging
from typing import Optional

from .. import __version__
from ..compositing import save_image
from ..editor import EditSession
from ..generation import GeminiGenerationClient, RetryingGenerationClient
from ..geometry import SelectionBox
from ..utils.logging_config import log_system_info, setup_cli_logging
from .config import (
    EditorConfig,
    create_sample_config,
    get_default_config_path,
    load_config
)


class CLIApp:
    """
    Main CLI application class for face patching.

    Handles argument parsing, validation, and runs either the headless
    pipeline or the interactive viewer.
    """

    def __init__(self):
        """Initialize CLI application."""
        self.config = EditorConfig()
        self.logger = logging.getLogger(__name__)
        self.session: Optional[EditSession] = None

    def setup_logging(self, verbose: bool = False, quiet: bool = False) -> None:
        """
        Setup logging configuration.

        Args:
            verbose: Enable verbose logging
            quiet: Enable quiet mode (errors only)
        """
        setup_cli_logging(verbose=verbose, quiet=quiet,
                          log_file=self.config.log_file,
                          level_name=self.config.log_level)
        self.logger = logging.getLogger(__name__)

    def create_argument_parser(self) -> argparse.ArgumentParser:
        """
        Create and configure argument parser.

        Returns:
            Configured ArgumentParser instance
        """
        parser = argparse.ArgumentParser(
            prog='face-patch',
            description='Face Patch - Replace a square region of a photo with a generated face',
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog='''
Examples:
  %(prog)s -r photo.jpg -f face.jpg
  %(prog)s -r photo.jpg -f face.jpg -o result.png
  %(prog)s -r photo.jpg -f face.jpg --box 420,180,300 -o result.png
  %(prog)s -r photo.jpg -f face.jpg --box 420,180,300 -o compare.png --compare --split 0.5
            '''
        )

        inputs = parser.add_argument_group('inputs')
        inputs.add_argument(
            '-r', '--reference',
            type=str,
            metavar='IMAGE',
            help='Target photo to patch'
        )
        inputs.add_argument(
            '-f', '--face',
            type=str,
            metavar='IMAGE',
            help='Source face image'
        )
        inputs.add_argument(
            '--box',
            type=str,
            metavar='X,Y,SIZE',
            help='Square region in image pixels; runs without opening a window'
        )

        generation = parser.add_argument_group('generation options')
        generation.add_argument(
            '--api-key',
            type=str,
            metavar='KEY',
            help='Gemini API key (default: GEMINI_API_KEY environment variable)'
        )
        generation.add_argument(
            '--model',
            type=str,
            metavar='NAME',
            help='Image model name'
        )
        generation.add_argument(
            '--config',
            type=str,
            metavar='FILE',
            help='Configuration file path (default: ./face_patch.yaml or ~/.config/face_patch/config.yaml if present)'
        )

        output = parser.add_argument_group('output options')
        output.add_argument(
            '-o', '--output',
            type=str,
            metavar='IMAGE',
            help='Where to save the result'
        )
        output.add_argument(
            '--compare',
            action='store_true',
            help='Save the before/after compare view instead of the composite'
        )
        output.add_argument(
            '--split',
            type=float,
            metavar='FRACTION',
            help='Split position for --compare, 0.0 to 1.0 (default: 0.5)'
        )
        output.add_argument(
            '--overwrite',
            action='store_true',
            help='Overwrite output file if it exists'
        )
        output.add_argument(
            '--verbose', '-v',
            action='store_true',
            help='Enable verbose output'
        )
        output.add_argument(
            '--quiet', '-q',
            action='store_true',
            help='Suppress all output except errors'
        )

        info = parser.add_argument_group('information')
        info.add_argument(
            '--version',
            action='version',
            version=f'%(prog)s {__version__}'
        )
        info.add_argument(
            '--create-config',
            type=str,
            metavar='FILE',
            help='Write a sample configuration file and exit'
        )
        info.add_argument(
            '--check-deps',
            action='store_true',
            help='Check system dependencies and exit'
        )

        return parser

    def parse_box(self, box_str: str) -> SelectionBox:
        """
        Parse a box string into a square selection.

        Args:
            box_str: Box string (e.g., "420,180,300")

        Returns:
            SelectionBox with equal width and height

        Raises:
            ValueError: If box format is invalid
        """
        try:
            parts = [int(p.strip()) for p in box_str.split(',')]
        except ValueError as e:
            raise ValueError(f"Invalid box format: {box_str}") from e

        if len(parts) != 3:
            raise ValueError("Box must be in format X,Y,SIZE")

        x, y, size = parts
        if x < 0 or y < 0 or size <= 0:
            raise ValueError("Box origin must be non-negative and size positive")

        return SelectionBox(x, y, size, size)

    def validate_arguments(self, args: argparse.Namespace) -> None:
        """
        Validate command line arguments.

        Args:
            args: Parsed command line arguments

        Raises:
            ValueError: If validation fails
        """
        if not args.reference:
            raise ValueError("Reference image is required")
        if not args.face:
            raise ValueError("Source face image is required")

        if not os.path.exists(args.reference):
            raise ValueError(f"Reference image not found: {args.reference}")
        if not os.path.exists(args.face):
            raise ValueError(f"Face image not found: {args.face}")

        if args.box:
            self.parse_box(args.box)
            if not args.output:
                raise ValueError("--output is required together with --box")

        if args.output and os.path.exists(args.output) and not args.overwrite:
            raise ValueError(
                f"Output file already exists: {args.output}\n"
                f"Use --overwrite to replace it"
            )

        if args.split is not None and not 0.0 <= args.split <= 1.0:
            raise ValueError("Split must be between 0.0 and 1.0")

        if args.verbose and args.quiet:
            raise ValueError("Cannot use --verbose and --quiet together")

    def load_configuration(self, args: argparse.Namespace) -> None:
        """
        Load configuration from file and apply command line overrides.

        Args:
            args: Parsed command line arguments
        """
        config_path = args.config
        if config_path is None:
            default_path = get_default_config_path()
            if default_path.exists():
                config_path = str(default_path)

        if config_path:
            try:
                self.config = load_config(config_path)
            except FileNotFoundError as e:
                raise ValueError(str(e)) from e

        if args.api_key:
            self.config.api_key = args.api_key
        if args.model:
            self.config.model_name = args.model
        if args.split is not None:
            self.config.default_split = args.split

    def create_session(self) -> EditSession:
        """Build the generation client stack and a new edit session."""
        client = RetryingGenerationClient(
            GeminiGenerationClient(
                api_key=self.config.api_key,
                model=self.config.model_name,
                request_timeout=self.config.request_timeout
            ),
            max_retries=self.config.max_retries,
            base_delay=self.config.retry_base_delay
        )
        return EditSession(client, self.config)

    def display_system_info(self) -> None:
        """Display system and dependency information."""
        print("Face Patch - System Information")
        print("=" * 50)
        print(f"Python version: {sys.version}")
        print(f"Platform: {sys.platform}")

        dependencies = {
            'opencv-python': 'cv2',
            'numpy': 'numpy',
            'requests': 'requests',
            'PyYAML': 'yaml',
            'colorlog': 'colorlog'
        }

        print("\nDependency Status:")
        for package, module in dependencies.items():
            try:
                __import__(module)
                print(f"✓ {package}: Available")
            except ImportError:
                print(f"✗ {package}: Not available")

    def run_headless(self, args: argparse.Namespace) -> bool:
        """
        Run the pipeline once over the box given on the command line.

        Args:
            args: Parsed command line arguments

        Returns:
            True if a result was saved
        """
        session = self.session
        session.set_selection(self.parse_box(args.box))

        if session.start_generation() is None:
            self.logger.error(session.message or "Generation could not be started")
            return False

        self.logger.info("Waiting for the generated patch...")
        session.wait_for_generation()

        if session.composite is None:
            self.logger.error(session.message or "No composite was produced")
            return False

        result = session.render() if args.compare else session.composite
        save_image(args.output, result)
        self.logger.info(f"Result saved: {args.output}")
        return True

    def run_interactive(self, args: argparse.Namespace) -> bool:
        """Open the viewer window for the loaded images."""
        from .viewer import PatchViewer

        PatchViewer(self.session, output_path=args.output).run()
        return True

    def run(self, argv: Optional[list] = None) -> int:
        """
        Main entry point for CLI application.

        Args:
            argv: Command line arguments (default: sys.argv)

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        parser = self.create_argument_parser()
        args = parser.parse_args(argv)

        try:
            self.load_configuration(args)
            self.setup_logging(args.verbose, args.quiet)

            # Handle information commands first (don't require validation)
            if args.check_deps:
                self.display_system_info()
                return 0

            if args.create_config:
                create_sample_config(args.create_config)
                return 0

            if args.verbose:
                log_system_info()

            self.validate_arguments(args)

            self.session = self.create_session()
            try:
                if not self.session.load_reference(args.reference):
                    raise ValueError(self.session.message)
                if not self.session.load_source_face(args.face):
                    raise ValueError(self.session.message)

                if args.box:
                    success = self.run_headless(args)
                else:
                    success = self.run_interactive(args)
            finally:
                self.session.close()

            return 0 if success else 1

        except ValueError as e:
            if not args.quiet:
                print(f"Error: {e}", file=sys.stderr)
            return 1
        except KeyboardInterrupt:
            if not args.quiet:
                print("\nOperation cancelled by user", file=sys.stderr)
            return 130


def main() -> int:
    """Main entry point for command line interface."""
    app = CLIApp()
    return app.run()


if __name__ == '__main__':
    sys.exit(main())
