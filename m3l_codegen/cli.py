import argparse
import logging
import sys
from typing import List, Optional

from m3l_codegen.builders import available_builders, run_builder
from m3l_codegen.colored_logging import (
    log_progress,
    log_section,
    log_success,
    setup_colored_logging,
)
from m3l_codegen.config import load_config
from m3l_codegen.exceptions import M3LCodegenError
from m3l_codegen.pipeline import M3LPipeline

# Note: Colored logging will be configured after parsing args
logger = None


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="m3l-codegen",
        description="Generate SQL schema scripts and TypeScript models from M3L model definitions.",
    )
    parser.add_argument(
        "-c",
        "--config",
        help="Path to the YAML settings file listing model sources and builders.",
    )
    parser.add_argument(
        "-i",
        "--input",
        help="M3L model file to process. Overrides the sources of the settings file.",
    )
    parser.add_argument(
        "-o",
        "--output-dir",
        help="Base output directory. Overrides the settings file.",
    )
    parser.add_argument(
        "-b",
        "--builder",
        dest="builders",
        action="append",
        choices=available_builders(),
        help="Builder to run (repeatable). Overrides the builders of every source.",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail on malformed model definitions instead of skipping them.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose DEBUG logging.",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored output (useful for CI/CD environments).",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)

    # --- Logging Setup ---
    log_level = logging.DEBUG if args.verbose else logging.INFO
    setup_colored_logging(level=log_level, use_colors=not args.no_color)

    global logger
    logger = logging.getLogger(__name__)

    if not args.config and not args.input:
        logger.error("Either --config or --input is required.")
        return 2

    try:
        # 1. Load Configuration
        log_progress(logger, "Loading configuration...")
        config = load_config(args.config, args)

        if config.logging.log_file or config.logging.verbose:
            setup_colored_logging(
                level=logging.DEBUG if config.logging.verbose else logging.INFO,
                use_colors=config.logging.use_colors and not args.no_color,
                log_file=config.logging.log_file,
            )
        logger.debug(f"Effective configuration loaded: {config}")

        parser_settings = config.parser
        total_files = 0
        for source in config.sources:
            # 2. Parse, enrich and resolve
            log_section(logger, f"Model Definitions: {source.path}")
            pipeline = M3LPipeline(
                parser_settings.to_parser_options(),
                apply_default_inheritance=parser_settings.apply_default_inheritance,
                strict_inheritance=parser_settings.strict_inheritance,
            )
            document = pipeline.run_file(source.path)

            # 3. Run builders
            for builder in source.builders:
                log_progress(logger, f"Running builder '{builder.type}'...")
                results = run_builder(
                    document,
                    builder.type,
                    builder.config,
                    default_output_dir=config.output_dir,
                )
                total_files += len(results)

        log_section(logger, "Completion")
        log_success(logger, f"Generation completed successfully ({total_files} files written).")
        return 0

    # --- Error Handling ---
    except M3LCodegenError as e:
        logger.error(str(e), exc_info=args.verbose)
        return 1
    except Exception as e:
        logger.error(f"An unexpected error occurred during generation: {e}", exc_info=True)
        return 1


# --- Script Entry Point ---
if __name__ == "__main__":
    sys.exit(main())
