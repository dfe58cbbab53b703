#!/usr/bin/env python3
"""Web front end for the ASM8 assembler."""

import sys
import os

from flask import Flask, request, jsonify, render_template

# Import assembler from parent directory
sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), ".."))
from assembler import (  # noqa: E402
    INSTRUCTIONS, GENERATORS, Assembler, AssemblerError, generate_lst)

app = Flask(__name__)

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

MAX_CODE_LEN = int(os.environ.get("MAX_CODE_LEN", 4096))

# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@app.route("/")
def index():
    return render_template("index.html")


@app.route("/api/instructions")
def api_instructions():
    return jsonify(instructions=[
        {"mnemonic": name, "opcode": spec.opcode, "arity": spec.arity}
        for name, spec in INSTRUCTIONS.items()
    ])


@app.route("/api/assemble", methods=["POST"])
def api_assemble():
    data = request.get_json(force=True)
    if not isinstance(data, dict):
        return jsonify(
            success=False,
            errors=["Request body must be a JSON object"],
            exit_code=1,
            words=0,
            output="",
            listing="",
        )
    code = data.get("code", "")
    fmt = data.get("format", "bin")

    if not isinstance(code, str) or not isinstance(fmt, str):
        return jsonify(
            success=False,
            errors=["'code' and 'format' must be strings"],
            exit_code=1,
            words=0,
            output="",
            listing="",
        )

    if fmt not in GENERATORS:
        return jsonify(
            success=False,
            errors=[f"Unknown output format '{fmt}'"],
            exit_code=1,
            words=0,
            output="",
            listing="",
        )

    if len(code) > MAX_CODE_LEN:
        return jsonify(
            success=False,
            errors=[f"Source code exceeds {MAX_CODE_LEN} character limit"],
            exit_code=1,
            words=0,
            output="",
            listing="",
        )

    try:
        words, listing = Assembler().assemble(code)
    except AssemblerError as e:
        return jsonify(
            success=False,
            errors=[str(e)],
            exit_code=e.exit_code,
            words=0,
            output="",
            listing="",
        )

    return jsonify(
        success=True,
        errors=[],
        exit_code=0,
        words=len(words),
        output=GENERATORS[fmt](words),
        listing=generate_lst(listing),
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8080))
    app.run(host="0.0.0.0", port=port)
