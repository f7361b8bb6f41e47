from __future__ import annotations
import argparse
import sys
from pathlib import Path
from errors import PlSankeyError
from pipeline import run_from_json, run_pipeline, summarize_rows


def parse_args(argv=None):
    ap = argparse.ArgumentParser(description="決算短信 PDF -> P/L Sankey (Excel / HTML / Markdown)")
    src = ap.add_mutually_exclusive_group(required=True)
    src.add_argument("--pdf", help="Path to input PDF")
    src.add_argument("--json", help="Path to an already extracted P/L JSON")
    ap.add_argument("--outdir", required=True, help="Output directory (will be created)")
    ap.add_argument("--ai-provider", default="openai", choices=["mock", "openai"],
                    help="AI provider (default: openai)")
    ap.add_argument("--language", default="ja", choices=["ja", "en"],
                    help="Node label language for the Sankey table (default: ja)")
    ap.add_argument("--year", default="both", choices=["both", "this", "last"],
                    help="Year shown in sankey.html (default: both, with a toggle)")
    ap.add_argument("--show-rows", action="store_true", help="Print the Sankey table after running")
    return ap.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    outdir = Path(args.outdir).expanduser().resolve()
    try:
        if args.pdf:
            pdf = Path(args.pdf).expanduser().resolve()
            res = run_pipeline(pdf, outdir, args.ai_provider, args.language, year=args.year)
        else:
            src = Path(args.json).expanduser().resolve()
            if not src.exists():
                raise FileNotFoundError(src)
            res = run_from_json(src, outdir, args.language, year=args.year)
    except PlSankeyError as exc:
        print(f"エラー: {exc}", file=sys.stderr)
        return 1

    print(f"Done. doc_id={res.meta.doc_id}, rows={len(res.rows)}, warnings={len(res.warnings)}")
    print(f"Excel: {res.outputs['xlsx']}")
    print(f"Sankey: {res.outputs['html']}")
    print(f"Report: {res.outputs['markdown']}")
    if args.show_rows:
        for line in summarize_rows(res):
            print(line)
    return 0


if __name__ == "__main__":
    sys.exit(main())
