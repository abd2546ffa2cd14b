from flask import Flask, request, jsonify
from flask_cors import CORS

import dendron
import soros
from errors import DendronError, format_error

app = Flask(__name__)
app.config.from_prefixed_env("DENDRON")
CORS(app)  # allow cross-origin requests

def ast_to_dict(node):
    """
    Serialize AST to dict recursively
    """
    if node is None:
        return None
    d = {"type": type(node).__name__}
    if isinstance(node, dendron.Program):
        d["actions"] = [ast_to_dict(a) for a in node.actions]
    elif isinstance(node, dendron.Assign):
        d["name"] = node.name
        d["expr"] = ast_to_dict(node.expr)
    elif isinstance(node, dendron.Print):
        d["expr"] = ast_to_dict(node.expr)
    elif isinstance(node, dendron.BinaryOp):
        d["op"] = node.op
        d["left"] = ast_to_dict(node.left)
        d["right"] = ast_to_dict(node.right)
    elif isinstance(node, dendron.UnaryOp):
        d["op"] = node.op
        d["operand"] = ast_to_dict(node.operand)
    elif isinstance(node, dendron.Constant):
        d["value"] = node.value
    elif isinstance(node, dendron.Variable):
        d["name"] = node.name
    return d

@app.route("/run", methods=["POST"])
def run_code():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    if "tokens" in data:
        if not isinstance(data["tokens"], list):
            return jsonify({"errors": ["'tokens' must be a list"]}), 400
        tokens = [str(t) for t in data["tokens"]]
    elif "code" in data:
        if not isinstance(data["code"], str):
            return jsonify({"errors": ["'code' must be a string"]}), 400
        tokens = dendron.tokenize(data["code"])
    else:
        return jsonify({"errors": ["Request body needs 'code' or 'tokens'"]}), 400

    try:
        result = dendron.run_tokens(tokens)

        response = {
            "tokens": result['tokens'],
            "ast": ast_to_dict(result['ast']) if result['ast'] else {},
            "display": result['display'],
            "output": result['output'],
            "symbol_table": result['symbol_table'],
            "assembly": result['asm'],
            "warnings": result['warnings'],
            "machine_output": result['machine_output'],
            "stack_depth": result['stack_depth'],
            "machine_symbol_table": result['machine_symbol_table'],
            "phases": result['phases'],
            "errors": result['errors'],
        }
        return jsonify(response)
    except Exception as e:
        app.logger.exception("run failed")
        return jsonify({
            "tokens": tokens,
            "ast": {},
            "display": [],
            "output": [],
            "symbol_table": {},
            "assembly": [],
            "warnings": [],
            "machine_output": [],
            "stack_depth": None,
            "machine_symbol_table": {},
            "phases": [],
            "errors": [f"Unexpected error: {str(e)}"],
        }), 500

@app.route("/execute", methods=["POST"])
def execute_assembly():
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or "assembly" not in data:
        return jsonify({"errors": ["Request body needs 'assembly'"]}), 400
    assembly = data["assembly"]
    if not isinstance(assembly, str) and not (
            isinstance(assembly, list) and all(isinstance(line, str) for line in assembly)):
        return jsonify({"errors": ["'assembly' must be a string or a list of strings"]}), 400

    warnings = []
    response = {
        "instructions": [],
        "warnings": warnings,
        "output": [],
        "stack_depth": None,
        "symbol_table": {},
        "errors": [],
    }
    machine = soros.Machine()
    try:
        program = soros.assemble(assembly, warnings)
        response["instructions"] = [repr(i) for i in program]
        run = machine.execute(program)
        response["stack_depth"] = run.stack_depth
    except DendronError as e:
        response["errors"].append(format_error(e))
    except Exception as e:
        app.logger.exception("execute failed")
        response["errors"].append(f"Unexpected error: {str(e)}")
        response["output"] = list(machine.output)
        response["symbol_table"] = dict(machine.table)
        return jsonify(response), 500
    response["output"] = list(machine.output)
    response["symbol_table"] = dict(machine.table)
    return jsonify(response)

@app.route("/samples", methods=["GET"])
def samples():
    return jsonify({"programs": dendron.PROGRAMS})

if __name__ == "__main__":
    app.run(debug=app.config.get("DEBUG", False))
