import os
from flask import Flask, request, jsonify, url_for, send_file
from flask_cors import CORS
from werkzeug.utils import secure_filename

from errors import HuffmanError
from text_compression import COMPRESSED_EXTENSION, compress_file, decompress_file

# -----------------------------------------------------------
# PATH CONFIGURATION
# -----------------------------------------------------------
BASE_DIR = os.path.abspath(os.path.dirname(__file__))
DATA_DIR = os.environ.get("HUFFMAN_DATA_DIR", os.path.join(BASE_DIR, "data"))

# Sub-folders of the upload directory
ORIGINAL_FOLDER = "original"
COMPRESSED_FOLDER = "compressed"
DECOMPRESSED_FOLDER = "decompressed"
DOWNLOAD_FOLDERS = (COMPRESSED_FOLDER, DECOMPRESSED_FOLDER)

# Text files are compressed character by character, the rest byte by byte
TEXT_EXTENSIONS = {"txt", "md", "csv", "log"}
ALLOWED_EXTENSIONS = TEXT_EXTENSIONS | {"pdf"}

MAX_UPLOAD_MB = int(os.environ.get("HUFFMAN_MAX_UPLOAD_MB", "16"))


def _extension(filename):
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


# -----------------------------------------------------------
# FLASK APP SETUP
# -----------------------------------------------------------
def create_app(data_dir=None):
    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = MAX_UPLOAD_MB * 1024 * 1024
    app.config["UPLOAD_DIR"] = os.path.join(data_dir or DATA_DIR, "uploads")
    CORS(app)

    def folder_path(folder, filename=""):
        return os.path.join(app.config["UPLOAD_DIR"], folder, filename)

    def upload_path(folder, filename):
        # Folders are created on first write, not when the app is built
        os.makedirs(folder_path(folder), exist_ok=True)
        return folder_path(folder, filename)

    # -----------------------------------------------------------
    # ROUTES
    # -----------------------------------------------------------
    @app.route("/")
    def home():
        return jsonify({
            "service": "huffman-text-compressor",
            "endpoints": {
                "compress": "POST /compress_file",
                "decompress": "POST /decompress_file",
                "download": "GET /download/<folder>/<filename>",
            },
            "allowed_extensions": sorted(ALLOWED_EXTENSIONS),
        })

    @app.route("/compress_file", methods=["POST"])
    def compress_file_route():
        file = request.files.get("file")
        if not file or not file.filename:
            return jsonify({"success": False, "error": "No file uploaded"}), 400

        filename = secure_filename(file.filename)
        ext = _extension(filename)
        if ext not in ALLOWED_EXTENSIONS:
            allowed = ", ".join(sorted(ALLOWED_EXTENSIONS))
            return jsonify({"success": False, "error": f"Only {allowed} files allowed"}), 400

        try:
            input_path = upload_path(ORIGINAL_FOLDER, filename)
            file.save(input_path)

            compressed_filename = filename + COMPRESSED_EXTENSION
            compressed_path = upload_path(COMPRESSED_FOLDER, compressed_filename)
            stats = compress_file(input_path, compressed_path, binary=ext not in TEXT_EXTENSIONS)

        except UnicodeDecodeError:
            return jsonify({"success": False, "error": "Text file is not valid UTF-8"}), 400
        except Exception:
            app.logger.exception("Error in /compress_file")
            return jsonify({"success": False, "error": "Internal server error"}), 500

        app.logger.info("Compressed %s: %s", filename, stats.as_dict())
        return jsonify({
            "success": True,
            "filename": filename,
            "compressed_filename": compressed_filename,
            **stats.as_dict(),
            "download_url": url_for("download", folder=COMPRESSED_FOLDER, filename=compressed_filename),
        })

    @app.route("/decompress_file", methods=["POST"])
    def decompress_file_route():
        file = request.files.get("file")
        if not file or not file.filename:
            return jsonify({"success": False, "error": "No file uploaded"}), 400

        filename = secure_filename(file.filename)
        if not filename.endswith(COMPRESSED_EXTENSION) or filename == COMPRESSED_EXTENSION:
            return jsonify({"success": False, "error": "Invalid file type"}), 400

        output_filename = filename[:-len(COMPRESSED_EXTENSION)]  # keep original filename

        try:
            input_path = upload_path(COMPRESSED_FOLDER, filename)
            file.save(input_path)
            decompress_file(input_path, upload_path(DECOMPRESSED_FOLDER, output_filename))

        except HuffmanError as e:
            app.logger.warning("Rejected %s: %s", filename, e)
            return jsonify({"success": False, "error": str(e)}), 400
        except Exception:
            app.logger.exception("Error in /decompress_file")
            return jsonify({"success": False, "error": "Internal server error"}), 500

        return jsonify({
            "success": True,
            "original_huff": filename,
            "decompressed_file": output_filename,
            "download_url": url_for("download", folder=DECOMPRESSED_FOLDER, filename=output_filename),
        })

    @app.route("/download/<folder>/<filename>")
    def download(folder, filename):
        if folder not in DOWNLOAD_FOLDERS:
            return "File not found", 404

        file_path = folder_path(folder, secure_filename(filename))
        if not os.path.exists(file_path):
            return "File not found", 404

        return send_file(file_path, as_attachment=True, download_name=filename,
                         mimetype="application/octet-stream")

    return app


app = create_app()

# -----------------------------------------------------------
if __name__ == "__main__":
    app.run(debug=True)
