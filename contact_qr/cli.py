"""CLI entry point for Contact QR."""

import argparse
import asyncio
import logging
import sys

from contact_qr import (
    __version__,
    DEFAULT_LEVEL,
    DEFAULT_PHOTO_MAX_DIM,
    DEFAULT_PHOTO_QUALITY,
    DEFAULT_QR_SIZE,
)


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="contact-qr",
        description="Turn contact details into a vCard and a scannable QR code.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Basic contact card
  python -m contact_qr --first-name Jane --last-name Doe \\
    --email jane@example.com --output jane.png --vcf jane.vcf

  # Embed a photo; it is re-compressed until the vCard fits level M
  python -m contact_qr --first-name Jane --last-name Doe \\
    --photo portrait.jpg --level M

  # Point the QR code at a hosted .vcf instead of embedding the vCard
  python -m contact_qr --first-name Jane \\
    --hosted-url https://example.com/jane.vcf
        """,
    )

    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )

    # Contact fields
    fields = parser.add_argument_group("contact fields")
    fields.add_argument("--first-name", default="")
    fields.add_argument("--last-name", default="")
    fields.add_argument(
        "--display-name",
        default="",
        help="Formatted name. Default: first and last name joined by a space",
    )
    fields.add_argument("--organization", default="")
    fields.add_argument("--title", default="")
    fields.add_argument("--phone-mobile", default="")
    fields.add_argument("--phone-work", default="")
    fields.add_argument("--email", default="")
    fields.add_argument("--website", default="", help="http:// or https:// URL")
    fields.add_argument("--street", default="")
    fields.add_argument("--city", default="")
    fields.add_argument("--region", default="")
    fields.add_argument("--postal-code", default="")
    fields.add_argument("--country", default="")
    fields.add_argument("--note", default="")

    # Photo
    photo = parser.add_argument_group("photo")
    photo.add_argument("--photo", default=None, help="Path to a photo to include in the vCard")
    photo.add_argument(
        "--photo-max-dim",
        type=int,
        default=DEFAULT_PHOTO_MAX_DIM,
        help=f"Longest side of the embedded photo in pixels (64-1024). Default: {DEFAULT_PHOTO_MAX_DIM}",
    )
    photo.add_argument(
        "--photo-quality",
        type=float,
        default=DEFAULT_PHOTO_QUALITY,
        help=f"JPEG quality of the embedded photo (0.4-0.95). Default: {DEFAULT_PHOTO_QUALITY}",
    )
    photo.add_argument(
        "--no-embed-photo",
        action="store_true",
        help="Leave the photo out of the QR payload",
    )
    photo.add_argument(
        "--no-vcf-photo",
        action="store_true",
        help="Leave the photo out of the exported .vcf file",
    )

    # QR rendering
    qr = parser.add_argument_group("QR code")
    qr.add_argument(
        "--level",
        default=DEFAULT_LEVEL,
        choices=["H", "Q", "M", "L"],
        type=str.upper,
        help=f"Error-correction level. Default: {DEFAULT_LEVEL}",
    )
    qr.add_argument(
        "--size",
        type=int,
        default=DEFAULT_QR_SIZE,
        help=f"QR image size in pixels (128-1024). Default: {DEFAULT_QR_SIZE}",
    )
    qr.add_argument("--dark", default="#000000", help="Module colour. Default: #000000")
    qr.add_argument("--light", default="#ffffff", help="Background colour. Default: #ffffff")
    qr.add_argument(
        "--hosted-url",
        default="",
        help="Encode this URL to a hosted .vcf instead of the vCard itself",
    )
    qr.add_argument(
        "--no-auto-downgrade",
        action="store_true",
        help="Fail instead of lowering the error-correction level when the payload is too big",
    )
    qr.add_argument(
        "--no-auto-compress",
        action="store_true",
        help="Do not re-compress the photo to fit the QR capacity",
    )

    # Output
    parser.add_argument(
        "--output", "-o",
        default="contact_qr.png",
        help="Output QR image path (default: contact_qr.png)",
    )
    parser.add_argument("--vcf", default=None, help="Also export the vCard to this .vcf path")
    parser.add_argument(
        "--show-vcard",
        action="store_true",
        help="Print the QR payload to stdout",
    )
    parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Overwrite output files without prompting",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log the photo fitting search",
    )

    return parser


def _confirm_overwrite(path: str | None, overwrite: bool) -> bool:
    import os
    if not path or overwrite or not os.path.exists(path):
        return True
    response = input(f"  Output file '{path}' already exists. Overwrite? [y/N] ")
    return response.lower() in ("y", "yes")


def _clear_stale_output(path: str | None, allowed: bool) -> None:
    import os
    if allowed and path and os.path.exists(path):
        os.remove(path)
        print(f"  Removed previous output: {path}", file=sys.stderr)


async def _run(args: argparse.Namespace) -> int:
    from contact_qr.capacity import CapacityExceededError
    from contact_qr.fit_search import FitSearchEngine, PhotoSession
    from contact_qr.image_utils import PhotoReencodeError, PillowPhotoCompressor, load_photo
    from contact_qr.payload import QrOptions, compose_payload, export_fields
    from contact_qr.qr_generator import RenderError, render_qr, save_qr_png
    from contact_qr.validation import validate_contact
    from contact_qr.vcard import VCARD_MIME_TYPE, ContactFields, build_vcard, save_vcf

    fields = ContactFields(
        first_name=args.first_name,
        last_name=args.last_name,
        display_name=args.display_name,
        organization=args.organization,
        title=args.title,
        phone_mobile=args.phone_mobile,
        phone_work=args.phone_work,
        email=args.email,
        website=args.website,
        street=args.street,
        city=args.city,
        region=args.region,
        postal_code=args.postal_code,
        country=args.country,
        note=args.note,
        include_photo=bool(args.photo) and not args.no_vcf_photo,
    )
    options = QrOptions(
        level=args.level,
        size=args.size,
        dark_color=args.dark,
        light_color=args.light,
        embed_photo=not args.no_embed_photo,
        auto_downgrade=not args.no_auto_downgrade,
        auto_compress=not args.no_auto_compress,
        hosted_vcf_url=args.hosted_url,
        use_hosted_url=bool(args.hosted_url),
    )

    # ------------------------------------------------------------------
    # Validate the form before anything is exported
    # ------------------------------------------------------------------
    errors = validate_contact(fields, options.hosted_vcf_url, options.use_hosted_url)
    if errors:
        for name, message in errors.items():
            print(f"  ERROR ({name}): {message}", file=sys.stderr)
        return 1

    compressor = PillowPhotoCompressor()
    session = PhotoSession(args.photo_max_dim, args.photo_quality)

    try:
        # Step 1: Load and encode the photo
        if args.photo:
            print(f"\n[1/3] Loading photo: {args.photo}")
            try:
                data_url = await session.load(load_photo(args.photo), compressor)
            except PhotoReencodeError as e:
                print(f"\n  ERROR: {e}", file=sys.stderr)
                return 1
            print(f"  ✓ Photo encoded ({len(data_url)} chars at "
                  f"{session.max_dimension}px, quality {session.quality})")
        else:
            print(f"\n[1/3] No photo, text-only vCard")

        # Step 2: Build the payload, fitting the photo if needed
        print(f"\n[2/3] Building QR payload (requested level {options.level})...")
        try:
            payload = await compose_payload(fields, session, options, FitSearchEngine(compressor))
        except CapacityExceededError as e:
            print(f"\n  ERROR: {e}", file=sys.stderr)
            _clear_stale_output(args.output, args.overwrite)
            return 1

        if payload.fit is not None:
            if payload.fit.ok:
                print(f"  ✓ Photo re-compressed to {session.max_dimension}px, "
                      f"quality {session.quality} ({payload.fit.attempts} attempts)")
            else:
                print(f"  ⚠️  No photo compression setting fits level {options.level} "
                      f"({payload.fit.attempts} attempts)")
        if payload.level.value != options.level:
            print(f"  ⚠️  Error correction lowered to {payload.level.value}")
        print(f"  ✓ Payload: {payload.byte_length} bytes, level {payload.level.value}")

        if args.show_vcard:
            print()
            print(payload.text)

        # Step 3: Render and save
        print(f"\n[3/3] Rendering QR code to: {args.output}")
        if not _confirm_overwrite(args.output, args.overwrite):
            print("  Aborted.")
            return 0
        try:
            qr_image = render_qr(
                payload.text,
                level=payload.level,
                size=options.size,
                dark_color=options.dark_color,
                light_color=options.light_color,
            )
        except RenderError as e:
            print(f"\n  ERROR: {e}", file=sys.stderr)
            print("  Failed to render QR. Try reducing payload or changing options.", file=sys.stderr)
            _clear_stale_output(args.output, True)
            return 1
        output_path = save_qr_png(qr_image, args.output)
        print(f"  ✓ Saved: {output_path}")

        if args.vcf:
            if not _confirm_overwrite(args.vcf, args.overwrite):
                print("  Skipped .vcf export.")
            else:
                vcf_path = save_vcf(build_vcard(export_fields(fields, session)), args.vcf)
                print(f"  ✓ Exported vCard ({VCARD_MIME_TYPE}): {vcf_path}")

        print(f"\n✅ Done! Your contact QR code is at: {output_path}")
        return 0

    except (ValueError, FileNotFoundError, OSError) as e:
        print(f"\n  ERROR: {e}", file=sys.stderr)
        return 1


def main(argv: list[str] | None = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )

    print(f"Contact QR v{__version__}")
    print("=" * 50)

    return asyncio.run(_run(args))


if __name__ == "__main__":
    sys.exit(main())
