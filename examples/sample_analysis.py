"""Sample analysis script demonstrating programmatic usage."""
from avr_stack.analysis.traverser import StackAnalysis
from avr_stack.image.encoding import assemble, brne, pop, push, rcall, ret
from avr_stack.image.hexfile import dump_hex, parse_hex
from avr_stack.report.generator import ReportGenerator


def demo_with_synthetic_firmware():
    """Demonstrate analysis of a synthetic AVR image loaded through Intel HEX."""
    # main:  rcall isr_like; ret
    # isr_like: push r24; push r25; loop: pop r25; push r25; brne loop; pop r25; pop r24; ret
    program = assemble(
        rcall(1),
        ret(),
        push(24),
        push(25),
        pop(25),
        push(25),
        brne(-3),
        pop(25),
        pop(24),
        ret(),
    )
    image = parse_hex(dump_hex(program), name="SyntheticFirmware")

    usage = StackAnalysis(image).apply()
    print(f"Worst-case stack usage: {usage}")

    gen = ReportGenerator(image.name)
    print(gen.to_markdown(usage, stack_size=32))


if __name__ == "__main__":
    demo_with_synthetic_firmware()
