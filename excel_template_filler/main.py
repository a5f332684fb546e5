"""Main API handler with Flask, Google Cloud Function and CLI support."""

import io
import json
import logging
import os
import sys
import traceback
from datetime import datetime
from typing import Any, Dict, Tuple, Union

import click
from flask import Flask, jsonify, request, send_file
from werkzeug.exceptions import RequestEntityTooLarge

from .config_manager import ConfigManager
from .template_filler import ExcelTemplateFiller, FillerSettings
from .utils.exceptions import (
    AuthenticationError,
    ExcelProcessingError,
    TemplateFillerError,
    TemplateNotFoundError,
    ValidationError,
)
from .utils.file_utils import (
    XLSX_MIMETYPE,
    load_json_file,
    read_uploaded_template,
    write_output_file,
)
from .utils.request_handler import PayloadParser, log_request_info
from .utils.validation import (
    parse_bool_param,
    parse_worksheet_selector,
    sanitize_filename,
    validate_fill_request,
)

__version__ = "0.1.0"

logger = logging.getLogger(__name__)

# Initialize components
config_manager = ConfigManager()
app_config = config_manager.get_app_config()

# Configure Flask app
app = Flask(__name__)
app.config["MAX_CONTENT_LENGTH"] = app_config["max_file_size_mb"] * 1024 * 1024


def setup_logging() -> None:
    """Setup logging configuration."""
    log_level = app_config.get("log_level", "INFO").upper()
    verbose_logging = os.environ.get("VERBOSE_LOGGING", "true").lower() == "true"

    if not verbose_logging and log_level in ["DEBUG", "INFO"]:
        log_level = "WARNING"

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level, logging.INFO))

    if not root_logger.handlers:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    if not verbose_logging:
        logging.getLogger("werkzeug").setLevel(logging.WARNING)
        logging.getLogger("PIL").setLevel(logging.WARNING)
        logging.getLogger("urllib3").setLevel(logging.WARNING)


def build_filler() -> ExcelTemplateFiller:
    """Create a filler from the current settings."""
    settings = FillerSettings.from_config(config_manager.get_filler_settings())
    return ExcelTemplateFiller(settings)


def authenticate_request() -> bool:
    """Authenticate API request."""
    if app_config.get("development_mode", False):
        logger.debug("Authentication bypassed in development mode")
        return True

    api_key = app_config.get("api_key")
    if not api_key:
        return True  # No authentication required if no key configured

    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1]
        return token == api_key

    request_key = request.args.get("api_key") or request.form.get("api_key")
    return request_key == api_key


def create_error_response(
    error: Exception, status_code: int = 500
) -> Tuple[Dict[str, Any], int]:
    """Create standardized error response."""
    error_response = {
        "success": False,
        "error": {
            "type": type(error).__name__,
            "message": str(error),
            "code": status_code,
        },
    }

    if getattr(error, "error_code", None):
        error_response["error"]["error_code"] = error.error_code

    if app_config.get("development_mode", False):
        error_response["error"]["traceback"] = traceback.format_exc()

    logger.error(f"API Error ({status_code}): {error}")
    return error_response, status_code


def error_status(error: Exception) -> int:
    """Map domain exceptions to HTTP status codes."""
    if isinstance(error, AuthenticationError):
        return 401
    if isinstance(error, TemplateNotFoundError):
        return 404
    if isinstance(error, (ValidationError, ExcelProcessingError)):
        return 400
    return 500


@app.errorhandler(RequestEntityTooLarge)
def handle_file_too_large(error):
    """Handle file size too large error."""
    content_length = request.headers.get("Content-Length", "Unknown")
    logger.error(
        f"413 Error - Request too large: path={request.path}, "
        f"Content-Length={content_length}"
    )
    return create_error_response(
        ValidationError(
            f"Request size exceeds maximum allowed size of {app_config['max_file_size_mb']}MB"
        ),
        413,
    )


@app.before_request
def before_request():
    """Pre-request authentication."""
    if request.endpoint == "health":
        return None

    if not authenticate_request():
        error_response, status_code = create_error_response(
            AuthenticationError("Invalid API key"), 401
        )
        return jsonify(error_response), status_code
    return None


@app.route("/api/v1/health", methods=["GET"])
def health() -> Tuple[Dict[str, Any], int]:
    """Health check endpoint."""
    return {
        "success": True,
        "status": "healthy",
        "version": __version__,
        "environment": os.getenv("ENVIRONMENT", "development"),
        "timestamp": datetime.utcnow().isoformat() + "Z",
        "features": {
            "scalar_placeholders": True,
            "rich_text_placeholders": True,
            "array_row_expansion": True,
            "image_embedding": True,
        },
    }, 200


def _read_template_from_request(parser: PayloadParser) -> Tuple[bytes, str]:
    template_file = parser.get_file("template_file")
    template_bytes = read_uploaded_template(
        template_file,
        app_config["allowed_extensions"],
        app_config["max_file_size_mb"],
    )
    filename = sanitize_filename(getattr(template_file, "filename", "") or "template.xlsx")
    return template_bytes, filename


@app.route("/api/v1/fill", methods=["POST"])
def fill_template() -> Union[Tuple[Dict[str, Any], int], Any]:
    """Fill an uploaded template with data and return the xlsx file."""
    log_request_info(request)

    try:
        parser = PayloadParser(request)

        template_bytes, filename = _read_template_from_request(parser)
        data = parser.get_json_param("data")
        validate_fill_request(data)
        worksheet = parse_worksheet_selector(parser.get_param("worksheet"))
        include_fill_log = parse_bool_param(parser.get_param("include_fill_log"))

        filler = build_filler()
        content = filler.export_to_excel(
            data,
            template_bytes,
            worksheet=worksheet,
            include_fill_log=include_fill_log or None,
        )
        report = filler.last_report.to_dict() if filler.last_report else {}
        logger.info(f"Fill completed for '{filename}': {report}")

        response = send_file(
            io.BytesIO(content),
            as_attachment=True,
            download_name=f"filled_{filename}",
            mimetype=XLSX_MIMETYPE,
        )
        response.headers["X-Fill-Report"] = json.dumps(report)
        return response

    except TemplateFillerError as e:
        return create_error_response(e, error_status(e))
    except Exception as e:
        logger.exception("Fill endpoint error")
        return create_error_response(e, 500)


@app.route("/api/v1/placeholders", methods=["POST"])
def list_placeholders() -> Tuple[Dict[str, Any], int]:
    """List the placeholders found in an uploaded template."""
    try:
        parser = PayloadParser(request)

        template_bytes, filename = _read_template_from_request(parser)
        results = build_filler().inspect_template(template_bytes)
        return {"success": True, "template": filename, **results}, 200

    except TemplateFillerError as e:
        return create_error_response(e, error_status(e))
    except Exception as e:
        logger.exception("Placeholder endpoint error")
        return create_error_response(e, 500)


def excel_template_filler(request):
    """Google Cloud Function request handler.

    Args:
        request: Flask request object from Cloud Functions

    Returns:
        Flask response with the filled workbook or error information
    """
    setup_logging()

    if request.path in ("/health", "/api/v1/health"):
        return health()

    if not authenticate_request():
        return create_error_response(AuthenticationError("Invalid API key"), 401)

    if request.method != "POST":
        return create_error_response(
            ValidationError(f"Method {request.method} not allowed"), 405
        )

    if request.path in ("/placeholders", "/api/v1/placeholders"):
        return list_placeholders()

    return fill_template()


# CLI interface
@click.group()
def cli():
    """Excel Template Filler CLI."""
    setup_logging()


@cli.command("fill")
@click.option(
    "--template",
    "-t",
    required=True,
    type=click.Path(exists=True),
    help="Path to the xlsx template",
)
@click.option(
    "--data",
    "-d",
    required=True,
    type=click.Path(exists=True),
    help="Path to a JSON file with the fill data",
)
@click.option("--output", "-o", required=False, help="Output file path")
@click.option("--worksheet", "-w", required=False, help="Sheet name or 1-based position")
@click.option(
    "--include-fill-log/--no-fill-log",
    default=False,
    help="Append a fill_log sheet to the output",
)
def fill_cli(
    template: str,
    data: str,
    output: str = None,
    worksheet: str = None,
    include_fill_log: bool = False,
) -> None:
    """Fill a template with data from a JSON file."""
    try:
        fill_data = load_json_file(data)

        if not output:
            output = f"filled_{os.path.basename(template)}"

        filler = build_filler()
        content = filler.export_to_excel(
            fill_data,
            template,
            worksheet=parse_worksheet_selector(worksheet),
            include_fill_log=include_fill_log or None,
        )
        write_output_file(content, output)

        click.echo(f"Successfully filled template: {output}")
        if filler.last_report:
            report = filler.last_report
            click.echo(
                f"  scalars: {report.scalars_filled}, rich text cells: {report.rich_text_cells}, "
                f"arrays: {report.arrays_expanded}, images: {report.images_embedded} "
                f"embedded / {report.images_failed} failed"
            )

    except TemplateFillerError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@cli.command("inspect")
@click.option(
    "--template",
    "-t",
    required=True,
    type=click.Path(exists=True),
    help="Path to the xlsx template",
)
@click.option("--pretty", is_flag=True, help="Pretty print JSON output")
def inspect_cli(template: str, pretty: bool = False) -> None:
    """List the placeholders of a template."""
    try:
        results = build_filler().inspect_template(template)
    except TemplateFillerError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if pretty:
        click.echo(json.dumps(results, indent=2, ensure_ascii=False))
    else:
        click.echo(json.dumps(results, ensure_ascii=False))


@cli.command()
@click.option("--host", default=None, help="Host to bind to")
@click.option("--port", default=None, type=int, help="Port to bind to")
@click.option("--debug", is_flag=True, help="Enable debug mode")
def serve(host: str, port: int, debug: bool) -> None:
    """Start the Flask development server."""
    flask_config = app_config["flask_config"]
    host = host or flask_config["host"]
    port = port or flask_config["port"]

    logger.info(f"Starting Excel Template Filler server on {host}:{port}")
    app.run(
        host=host,
        port=port,
        debug=debug or flask_config["debug"] or app_config.get("development_mode", False),
    )


if __name__ == "__main__":
    cli()
