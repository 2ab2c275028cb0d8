from __future__ import annotations

import os
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from prompt_analyzer.adapters.openai_provider import OpenAITextProvider
from prompt_analyzer.config import IniConfig, setup_logging
from prompt_analyzer.ports.text_provider import GenerationOptions, TextProvider
from prompt_analyzer.repositories.export_repository import ExportRepository
from prompt_analyzer.services.batch_runner import BatchRunner
from prompt_analyzer.services.keyword_matcher import matcher_for_mode
from prompt_analyzer.services.scheduler import SequentialScheduler
from prompt_analyzer.services.workspace import AnalysisWorkspace
from prompt_analyzer.web.routes import create_blueprint


def create_app(ini: Optional[IniConfig] = None, provider: Optional[TextProvider] = None) -> Flask:
    """
    Composition root: loads config, wires provider, scheduler, workspace and routes.
    Tests pass their own IniConfig and a fake provider.
    """
    load_dotenv()

    ini = ini or IniConfig.from_env_or_default()
    settings = ini.load_settings()
    setup_logging(settings.log_level)

    if provider is None:
        provider = OpenAITextProvider.from_api_key(
            os.getenv(settings.api_key_env, ""),
            timeout_seconds=settings.provider_timeout_seconds,
        )

    scheduler = SequentialScheduler(
        provider=provider,
        matcher=matcher_for_mode(settings.matching_mode),
        options=GenerationOptions(
            model=settings.model,
            max_output_tokens=settings.max_output_tokens,
            temperature=settings.temperature,
        ),
        inter_call_delay_seconds=settings.inter_call_delay_seconds,
    )

    workspace = AnalysisWorkspace(
        scheduler=scheduler,
        batch_runner=BatchRunner(scheduler=scheduler, max_rows=settings.max_batch_rows),
        max_prompts=settings.max_prompts,
    )

    export_repo = ExportRepository(exports_base=settings.exports_base)

    app = Flask(__name__)
    app.register_blueprint(create_blueprint(workspace, export_repo))

    app.config["HOST"] = settings.flask_host
    app.config["PORT"] = settings.flask_port
    app.config["DEBUG"] = settings.flask_debug
    app.config["SETTINGS"] = settings
    app.extensions["workspace"] = workspace

    app.logger.info(
        "Prompt analyzer ready: model=%s max_tokens=%d delay=%dms matching=%s exports=%s",
        settings.model,
        settings.max_output_tokens,
        settings.inter_call_delay_ms,
        settings.matching_mode,
        settings.exports_base,
    )
    return app
