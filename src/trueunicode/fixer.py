from os import PathLike

from argparse import ArgumentParser
from pathlib import Path
from urllib.parse import urlparse
from tqdm import tqdm
import json
import requests
import sys

from trueunicode.escapes import decode
from trueunicode.guess import best_guess, guess
from trueunicode.recode import (
    POLICIES,
    EncodingError,
    convert,
    decode_bytes,
    fix_mojibake,
)

# The steps are applied in this order:
#
# 1. bytes are decoded from from_encoding - bytes which aren't valid get
#    the on_unmappable treatment
# 2. mojibake: UTF-8 which was read as windows-1252 gets re-read
# 3. byte_escapes: <c5><a0> runs are decoded as byte_encoding
# 4. unicode_escapes: <U+0160> escapes are decoded
# 5. the result is restricted to what to_encoding can represent, again with
#    on_unmappable deciding what happens to the rest

DEFAULT_CONFIG = {
    "from_encoding": "utf-8",
    "to_encoding": "utf-8",
    "on_unmappable": "placeholder",
    "mojibake": False,
    "byte_escapes": False,
    "byte_encoding": "utf-8",
    "unicode_escapes": True,
}


class TextFixerException(Exception):
    pass


def is_url(source):
    """Only http and https URLs are fetched, anything else is a filename"""
    return urlparse(str(source)).scheme in ("http", "https")


class TextFixer:
    def __init__(self):
        self.cf = None

    def read_config(self, config_file):
        """Load config from file"""
        close_file = False
        if isinstance(config_file, (str, PathLike)):
            config_file = open(config_file, "r")
            close_file = True
        else:
            config_file.seek(0)

        try:
            cf = json.load(config_file)
        except json.JSONDecodeError as e:
            raise TextFixerException(f"Config file is not valid JSON: {e}")
        finally:
            if close_file:
                config_file.close()
            else:
                config_file.seek(0)

        self.cf = dict(DEFAULT_CONFIG)
        self.cf.update(cf)

    def infer_config(self, sources):
        """Create a default config, guessing the encoding from the first
        source"""
        self.cf = dict(DEFAULT_CONFIG)
        if sources:
            encoding = best_guess(self.fetch(sources[0]))
            # a file with no high bytes is ascii as far as chardet is
            # concerned, but the next one might not be
            if encoding == "ascii":
                encoding = "utf-8"
            self.cf["from_encoding"] = encoding

    def write_config(self, config_file):
        """Write the config file with any changes made"""
        close_file = False
        if isinstance(config_file, (str, PathLike)):
            config_file = open(config_file, "w")
            close_file = True
        else:
            config_file.seek(0)

        json.dump(self.cf, config_file, indent=4)

        if close_file:
            config_file.close()
        else:
            config_file.seek(0)

    def fetch(self, source):
        """Get the raw bytes for a source, which is a URL or a filename"""
        source = str(source)
        if is_url(source):
            return self._fetch_http(source)
        else:
            return self._fetch_file(source)

    def _fetch_http(self, url):
        try:
            response = requests.get(url)
        except requests.RequestException as e:
            raise TextFixerException(f"http request to {url} failed: {e}")
        if response.ok:
            return response.content
        raise TextFixerException(
            f"http request to {url} failed with status {response.status_code}"
        )

    def _fetch_file(self, fn):
        try:
            with open(fn, "rb") as fh:
                return fh.read()
        except OSError as e:
            raise TextFixerException(f"File read failed: {e}")

    def fix_text(self, data):
        """Run bytes or a str through the configured steps"""
        if self.cf is None:
            raise TextFixerException(
                "Need to run read_config or infer_config before fixing text"
            )
        cf = self.cf
        try:
            text = convert(data, cf["from_encoding"], "utf-8", cf["on_unmappable"])
            if cf["mojibake"]:
                text = fix_mojibake(text)
            if cf["byte_escapes"]:
                text = decode_bytes(text, cf["byte_encoding"])
            if cf["unicode_escapes"]:
                text = decode(text)
            return convert(text, "utf-8", cf["to_encoding"], cf["on_unmappable"])
        except (EncodingError, ValueError) as e:
            raise TextFixerException(f"Conversion failed: {e}")

    def fix(self, source):
        """Fetch a source and return its fixed text"""
        return self.fix_text(self.fetch(source))

    def fix_all(self, sources, output_dir=None):
        """Fix a list of sources, returning a dict of source: fixed text. If
        output_dir is given each text is also written there."""
        sources = list(sources)
        self.check_sources(sources, output_dir)
        if output_dir is not None:
            Path(output_dir).mkdir(parents=True, exist_ok=True)
        results = {}
        for source in tqdm(sources):
            text = self.fix(source)
            results[source] = text
            if output_dir is not None:
                self.write_text(text, Path(output_dir) / self.output_name(source))
        return results

    def check_sources(self, sources, output_dir=None):
        """Refuse repeated sources, and sources which would be written to the
        same file in output_dir"""
        seen = set()
        for source in sources:
            if source in seen:
                raise TextFixerException(f"Source {source} is listed twice")
            seen.add(source)
        if output_dir is None:
            return
        names = {}
        for source in sources:
            name = self.output_name(source)
            if name in names:
                raise TextFixerException(
                    f"{names[name]} and {source} would both be written to {name}"
                )
            names[name] = source

    def write_text(self, text, fn):
        try:
            with open(fn, "w", encoding=self.cf["to_encoding"], newline="") as fh:
                fh.write(text)
        except OSError as e:
            raise TextFixerException(f"File write failed: {e}")

    def output_name(self, source):
        """The filename to use for the fixed version of a source"""
        source = str(source)
        if is_url(source):
            name = Path(urlparse(source).path).name
            return name or "index.txt"
        return Path(source).name


# Style guide: all print() output should be in the section below this -
# the library code above needs to be able to work in contexts where stdout
# carries the fixed text


OVERRIDES = [
    "from_encoding",
    "to_encoding",
    "on_unmappable",
    "mojibake",
    "byte_escapes",
    "unicode_escapes",
]


def cli(argv=None):
    ap = ArgumentParser("Fix <U+XXXX> escapes and encoding damage in text")
    ap.add_argument(
        "sources",
        nargs="+",
        type=str,
        help="Text files or URLs",
    )
    ap.add_argument(
        "-o",
        "--output",
        default=None,
        type=Path,
        help="Directory to write fixed files to (default is stdout)",
    )
    ap.add_argument(
        "-c",
        "--config",
        default="trueunicode.json",
        type=Path,
        help="Configuration file",
    )
    ap.add_argument(
        "--from",
        dest="from_encoding",
        default=None,
        type=str,
        help="Encoding of the sources (default is to guess)",
    )
    ap.add_argument(
        "--to",
        dest="to_encoding",
        default=None,
        type=str,
        help="Encoding of the output",
    )
    ap.add_argument(
        "--unmappable",
        dest="on_unmappable",
        default=None,
        choices=sorted(POLICIES),
        help="What to do with characters the output encoding can't represent",
    )
    ap.add_argument(
        "--mojibake",
        action="store_true",
        default=None,
        help="Repair UTF-8 which has been read as windows-1252",
    )
    ap.add_argument(
        "--bytes",
        dest="byte_escapes",
        action="store_true",
        default=None,
        help="Decode <xx> byte escapes",
    )
    ap.add_argument(
        "--no-escapes",
        dest="unicode_escapes",
        action="store_false",
        default=None,
        help="Leave <U+XXXX> escapes alone",
    )
    ap.add_argument(
        "--guess",
        action="store_true",
        help="Report the likely encodings of the sources and exit",
    )
    args = ap.parse_args(argv)

    tf = TextFixer()

    try:
        if args.guess:
            for source in args.sources:
                print(source)
                for encoding, confidence in guess(tf.fetch(source)):
                    print(f"    {encoding}: {confidence:.2f}")
            sys.exit()

        if args.config.is_file():
            print(f"Loading config from {args.config}", file=sys.stderr)
            tf.read_config(args.config)
        else:
            print(
                f"Config {args.config} not found - generating default",
                file=sys.stderr,
            )
            tf.infer_config(args.sources)

        for key in OVERRIDES:
            value = getattr(args, key)
            if value is not None:
                tf.cf[key] = value

        tf.write_config(args.config)
        print(
            f"Updated config file: {args.config}, edit this file to change the "
            "conversion or delete it to start over",
            file=sys.stderr,
        )

        results = tf.fix_all(args.sources, args.output)
    except TextFixerException as e:
        print(f"trueunicode: {e}", file=sys.stderr)
        sys.exit(1)

    if args.output is None:
        for text in results.values():
            sys.stdout.buffer.write(text.encode(tf.cf["to_encoding"]))
    else:
        print(f"Wrote {len(results)} files to {args.output}", file=sys.stderr)


if __name__ == "__main__":
    cli()
