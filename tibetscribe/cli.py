"""Command-Line Interface handler for TibetScribe."""

import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

from tqdm import tqdm

from .config_loader import ConfigLoader
from .log_setup import parse_log_level, setup_logging
from .exceptions import TibetScribeError, ConfigurationError
from .explainer import GeminiExplainer
from .formatter import GeminiFormatter
from .gemini import GeminiClient
from .images import load_image_tasks
from .models import ImageTask, Stage
from .pipeline import PipelineOrchestrator
from .selection import SelectionActionCoordinator
from .transcriber import GeminiTranscriber
from .translator import GeminiTranslator, Translator

logger = logging.getLogger(__name__) # Get logger for this module

class CLIHandler:
    """Parses arguments and runs the transcription/translation pipeline."""

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """Creates the argument parser for the CLI."""
        parser = argparse.ArgumentParser(
            description="TibetScribe: transcribe Tibetan page images, translate them to English and explain selected phrases.",
            formatter_class=argparse.ArgumentDefaultsHelpFormatter # Show defaults in help
        )
        parser.add_argument(
            "images",
            nargs="*",
            help="Page images to transcribe, in page order."
        )
        source = parser.add_mutually_exclusive_group()
        source.add_argument(
            "-t", "--text",
            default=None,
            help="Tibetan text to translate instead of transcribing images."
        )
        source.add_argument(
            "--text-file",
            default=None,
            help="UTF-8 file holding Tibetan text to translate instead of transcribing images."
        )
        parser.add_argument(
            "-c", "--config",
            default="config.yaml",
            help="Path to the configuration YAML file."
        )
        parser.add_argument(
            "-q", "--quality",
            type=float,
            default=None, # Default taken from config file
            help="Translation quality level from 0 to 100. Omit to use the configured level."
        )
        parser.add_argument(
            "--backend",
            default=None, # Default taken from config
            choices=["gemini", "huggingface"],
            help="Override the translation backend specified in config."
        )
        parser.add_argument(
            "--device",
            default=None, # Default taken from config
            choices=["cuda", "cpu"],
            help="Override the device used by the huggingface backend."
        )
        parser.add_argument(
            "--explain",
            metavar="PHRASE",
            default=None,
            help="Select PHRASE in the transcription and explain it in context."
        )
        parser.add_argument(
            "--alternates",
            metavar="PHRASE",
            default=None,
            help="Select PHRASE in the transcription and list alternate translations."
        )
        parser.add_argument(
            "--occurrence",
            type=int,
            default=0,
            help="Which occurrence of the phrase to select (0 = first)."
        )
        parser.add_argument(
            "--log-level",
            default="INFO",
            choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            help="Set the logging level for console and file output."
        )
        return parser

    def _read_text_input(self, args: argparse.Namespace) -> Optional[str]:
        if args.text is not None:
            return args.text
        if args.text_file is not None:
            try:
                with open(args.text_file, "r", encoding="utf-8") as f:
                    return f.read()
            except OSError as e:
                raise TibetScribeError(f"Could not read text file {args.text_file}: {e}") from e
        return None

    def _build_translator(self, config: dict, client: GeminiClient) -> Translator:
        if config['translation_backend'] == 'huggingface':
            # Imported lazily: pulls in torch/transformers
            from .hf_translator import HuggingFaceTranslator
            return HuggingFaceTranslator(
                model_name=config['hf_translation_model'],
                device=config['device']
            )
        return GeminiTranslator(client, model_name=config['translation_model'])

    async def _execute(self, args: argparse.Namespace, config: dict, images: list, text: Optional[str]) -> int:
        client = GeminiClient(api_key_env=config['api_key_env'])
        orchestrator = PipelineOrchestrator(
            transcriber=GeminiTranscriber(client, model_name=config['transcription_model']),
            formatter=GeminiFormatter(client, model_name=config['formatting_model']),
            translator=self._build_translator(config, client),
            quality_level=config.get('quality_level'),
        )
        coordinator = SelectionActionCoordinator(
            orchestrator,
            GeminiExplainer(client, model_name=config['explanation_model'])
        )

        if text is not None:
            await orchestrator.start_from_text(text)
        else:
            with tqdm(total=len(images), unit="image", desc="Transcribing") as pbar:
                def settled(task: ImageTask) -> None:
                    pbar.set_postfix_str(os.path.basename(task.source_ref)[:30])
                    pbar.update(1)
                orchestrator.on_image_settled = settled
                await orchestrator.start_from_images(images)

            for task in orchestrator.images:
                if task.error_message:
                    logger.warning(f"{task.source_ref}: {task.error_message}")

        if orchestrator.stage == Stage.ERROR:
            logger.error(f"Pipeline failed: {orchestrator.error_message}")
            return 1

        self._print_section("Tibetan Transcription", orchestrator.canonical_text)
        self._print_section("English Translation", orchestrator.translation)

        actions = [(args.explain, "Explanation of Selected Phrase", coordinator.explain, coordinator.explanation),
                   (args.alternates, "Alternate Translations", coordinator.get_alternates, coordinator.alternates)]
        exit_code = 0
        for phrase, title, action, state in actions:
            if not phrase:
                continue
            document = coordinator.render()
            raw = document.select(phrase, args.occurrence) if document is not None else None
            if raw is None:
                logger.error(f"Phrase not found in the transcription: {phrase}")
                exit_code = 1
                continue
            span = coordinator.select(raw)
            if span is None:
                logger.error(f"Could not locate the selected phrase in the source text: {phrase}")
                exit_code = 1
                continue
            logger.info(f"Selected characters {span.start}-{span.end} of the transcription.")
            await action()
            if state.error:
                logger.error(state.error)
                exit_code = 1
            else:
                self._print_section(title, state.result)
        return exit_code

    @staticmethod
    def _print_section(title: str, body: Optional[str]) -> None:
        sys.stdout.write(f"\n=== {title} ===\n{body or ''}\n")
        sys.stdout.flush()

    def _load_config(self, args: argparse.Namespace) -> dict:
        """
        Loads the configuration file and applies the command-line overrides.

        Raises:
            ConfigurationError: If the file is invalid or an override is out of range.
            FileNotFoundError: If the file does not exist.
        """
        loader = ConfigLoader()
        config = loader.load_config(args.config)
        overrides = {
            'quality_level': args.quality,
            'translation_backend': args.backend,
            'device': args.device,
        }
        for key, value in overrides.items():
            if value is None:
                continue
            logger.info(f"Overriding {key} from config with CLI argument: {value}")
            config[key] = value
        loader.validate(config)
        return config

    def run(self, argv: Optional[List[str]] = None) -> None:
        """Parses arguments, sets up logging, loads config, and runs the pipeline."""
        args = self.parser.parse_args(argv)
        log_level = parse_log_level(args.log_level)

        # Bootstrap log until the configured location is known
        setup_logging(log_level=log_level, log_dir='logs', log_file='tibetscribe_init.log')
        try:
            config = self._load_config(args)
        except FileNotFoundError:
            logger.critical(f"Configuration file not found: {args.config}")
            sys.exit(1)
        except ConfigurationError as e:
            logger.critical(f"Invalid configuration ({args.config}): {e}")
            sys.exit(1)
        setup_logging(log_level=log_level, log_dir=config['log_dir'], log_file=config['log_file'])

        try:
            text = self._read_text_input(args)
            if text is None and not args.images:
                self.parser.error("Provide page images, --text or --text-file.")
            if text is not None and args.images:
                self.parser.error("Images cannot be combined with --text or --text-file.")
            images = load_image_tasks(args.images) if text is None else []

            exit_code = asyncio.run(self._execute(args, config, images, text))
        except TibetScribeError as e:
            logger.error(f"A TibetScribe error occurred: {e}")
            sys.exit(1)
        except KeyboardInterrupt:
            logger.warning("Process interrupted by user (Ctrl+C). Exiting.")
            sys.exit(1)
        except Exception as e:
            logger.critical(f"An unexpected critical error occurred at the top level: {e}", exc_info=True)
            sys.exit(2) # Different exit code for unexpected crashes

        if exit_code == 0:
            logger.info("TibetScribe finished successfully.")
        sys.exit(exit_code)

def main() -> None:
    CLIHandler().run()
