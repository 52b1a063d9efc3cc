"""Internationalization helpers for pipeline messages.

Provide translation strings for every user-facing message of the release
pipeline. The module exposes ``translate`` (aliased as ``_``) and
``set_language`` used by the command line launcher.

Typical usage::

    from musl_release.i18n import translate, set_language

"""

from __future__ import annotations

LANG: str = "en"
SUPPORTED_LANGUAGES: tuple[str, ...] = ("en", "sv")

TEXTS: dict[str, dict[str, str]] = {
    "en": {
        "pipeline_title": "Release pipeline",
        "header": "Cross-compiling {binary} for {target}",
        "stage_environment": "Validate environment",
        "stage_provision": "Provision toolchain",
        "stage_clean": "Clean workspace",
        "stage_compile": "Compile",
        "stage_verify": "Verify compiled output",
        "stage_stage": "Stage artifact",
        "stage_report": "Report success",
        "checking_docker": "Checking that Docker is running...",
        "docker_ok": "Docker is running.",
        "docker_unavailable": "Docker is not available. Start the Docker daemon and try again.",
        "adding_target": "Adding Rust target {target}...",
        "installing_cross": "Installing the cross build helper...",
        "cross_present": "cross is already installed.",
        "provision_failed": "Toolchain provisioning failed.",
        "cleaning": "Removing previous build output in {path}...",
        "clean_failed": "Could not remove previous build output.",
        "compiling": "Building {binary} in release mode for {target}...",
        "compile_failed": "Compilation failed.",
        "compile_ok": "Compilation finished.",
        "artifact_missing": "Compiled binary not found at {path}.",
        "artifact_found": "Compiled binary found at {path}.",
        "staging": "Copying artifact to {path}...",
        "staging_failed": "Copying the artifact failed.",
        "timed_out": "{stage} timed out after {seconds}s.",
        "locked": "Another release run is in progress (lock file {path}).",
        "interrupted": "Release run interrupted.",
        "build_complete": "BUILD COMPLETE",
        "artifact_ready": "Artifact: {path} ({size})",
        "failed_at": "Release failed at stage: {stage}",
        "config_error": "Invalid configuration: {detail}",
    },
    "sv": {
        "pipeline_title": "Releasepipeline",
        "header": "Korskompilerar {binary} för {target}",
        "stage_environment": "Kontrollera miljö",
        "stage_provision": "Installera verktygskedja",
        "stage_clean": "Rensa arbetskatalog",
        "stage_compile": "Kompilera",
        "stage_verify": "Verifiera kompilerad fil",
        "stage_stage": "Placera artefakt",
        "stage_report": "Rapportera resultat",
        "checking_docker": "Kontrollerar att Docker körs...",
        "docker_ok": "Docker körs.",
        "docker_unavailable": "Docker är inte tillgängligt. Starta Docker och försök igen.",
        "adding_target": "Lägger till Rust-målet {target}...",
        "installing_cross": "Installerar byggverktyget cross...",
        "cross_present": "cross är redan installerat.",
        "provision_failed": "Installationen av verktygskedjan misslyckades.",
        "cleaning": "Tar bort tidigare byggresultat i {path}...",
        "clean_failed": "Kunde inte ta bort tidigare byggresultat.",
        "compiling": "Bygger {binary} i release-läge för {target}...",
        "compile_failed": "Kompileringen misslyckades.",
        "compile_ok": "Kompileringen är klar.",
        "artifact_missing": "Kompilerad fil saknas: {path}.",
        "artifact_found": "Kompilerad fil hittad: {path}.",
        "staging": "Kopierar artefakt till {path}...",
        "staging_failed": "Kopieringen av artefakten misslyckades.",
        "timed_out": "{stage} avbröts efter {seconds} s.",
        "locked": "En annan release-körning pågår (låsfil {path}).",
        "interrupted": "Release-körningen avbröts.",
        "build_complete": "BYGGET ÄR KLART",
        "artifact_ready": "Artefakt: {path} ({size})",
        "failed_at": "Releasen misslyckades i steget: {stage}",
        "config_error": "Ogiltig konfiguration: {detail}",
    },
}


def translate(key: str, **fields: object) -> str:
    r"""Translate a message key to the current language.

    Missing languages fall back to English and missing keys fall back to
    the key itself. Keyword arguments are substituted with ``str.format``.

    Parameters
    ----------
    key : str
        Message key.
    **fields : object
        Values for the placeholders in the message.

    Returns
    -------
    str
        The translated, formatted message.

    Examples
    --------
    >>> translate("compile_failed")
    'Compilation failed.'
    >>> translate("UNKNOWN_KEY")
    'UNKNOWN_KEY'
    """
    text = TEXTS.get(LANG, TEXTS["en"]).get(key) or TEXTS["en"].get(key, key)
    if fields:
        try:
            return text.format(**fields)
        except (KeyError, IndexError):
            return text
    return text


_ = translate


def set_language(lang: str) -> None:
    """Set the module-level language, ignoring unsupported codes."""
    global LANG
    LANG = lang if lang in SUPPORTED_LANGUAGES else "en"
